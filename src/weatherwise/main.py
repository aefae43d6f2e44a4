from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .aggregator import NoProviderAvailable, WeatherAggregator, build_aggregator
from .alerts import AlertEvaluator, AlertRegistry
from .domain.models import (
    AlertDefinition,
    Forecast,
    LocationQuery,
    NormalizedCurrent,
    NormalizedHistorical,
    Units,
    WeatherAlert,
)
from .insights import InsightResult, assess_activity
from .scheduler import AlertScheduler
from .settings import AppSettings, load_settings

router = APIRouter()


class InsightRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    activity: str
    location: LocationQuery


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_aggregator(request: Request) -> WeatherAggregator:
    return request.app.state.aggregator


def _get_registry(request: Request) -> AlertRegistry:
    return request.app.state.alert_registry


def _location_query(
    city: str | None,
    country: str | None,
    lat: float | None,
    lon: float | None,
) -> LocationQuery:
    query = LocationQuery(city=city, country=country, lat=lat, lon=lon)
    if not query.is_resolvable:
        raise HTTPException(status_code=422, detail="Provide city or both lat and lon")
    return query


def _no_provider_response(exc: NoProviderAvailable) -> HTTPException:
    return HTTPException(status_code=503, detail={"error": str(exc), "reason": exc.reason})


@router.get("/health", response_class=JSONResponse)
def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "weatherwise",
            "providers": _get_aggregator(request).provider_names,
            "default_units": settings.env.default_units,
            "scheduler_running": request.app.state.alert_scheduler.running,
            "alert_count": len(_get_registry(request)),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@router.get("/providers")
def provider_status(request: Request) -> dict[str, bool]:
    return _get_settings(request).provider_status()


@router.get("/weather/current", response_model=NormalizedCurrent)
def current_weather(
    request: Request,
    city: str | None = None,
    country: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    units: Units | None = None,
) -> NormalizedCurrent:
    query = _location_query(city, country, lat, lon)
    try:
        return _get_aggregator(request).get_current(query, units)
    except NoProviderAvailable as exc:
        raise _no_provider_response(exc) from exc


@router.get("/weather/forecast", response_model=Forecast)
def forecast(
    request: Request,
    city: str | None = None,
    country: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    units: Units | None = None,
    days: int = Query(default=3, ge=1, le=7),
) -> Forecast:
    query = _location_query(city, country, lat, lon)
    try:
        return _get_aggregator(request).get_forecast(query, units, days)
    except NoProviderAvailable as exc:
        raise _no_provider_response(exc) from exc


@router.get("/weather/historical", response_model=NormalizedHistorical)
def historical_weather(
    request: Request,
    date_value: date = Query(alias="date"),
    city: str | None = None,
    country: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
) -> NormalizedHistorical:
    query = _location_query(city, country, lat, lon)
    try:
        return _get_aggregator(request).get_historical(query, date_value)
    except NoProviderAvailable as exc:
        raise _no_provider_response(exc) from exc


@router.post("/insights", response_model=InsightResult)
def insights(request: Request, body: InsightRequest) -> InsightResult:
    if not body.location.is_resolvable:
        raise HTTPException(status_code=422, detail="Provide city or both lat and lon")
    aggregator = _get_aggregator(request)
    try:
        current = aggregator.get_current(body.location)
        daily = aggregator.get_forecast(body.location)
    except NoProviderAvailable as exc:
        raise _no_provider_response(exc) from exc
    return assess_activity(body.activity, current, daily)


@router.get("/alerts", response_model=list[WeatherAlert])
def list_alerts(request: Request) -> list[WeatherAlert]:
    return _get_registry(request).list()


@router.post("/alerts", response_model=WeatherAlert, status_code=201)
def create_alert(request: Request, definition: AlertDefinition) -> WeatherAlert:
    return _get_registry(request).register(definition)


@router.delete("/alerts/{alert_id}")
def delete_alert(request: Request, alert_id: str) -> dict[str, Any]:
    removed = _get_registry(request).remove(alert_id)
    return {"removed": removed, "id": alert_id}


def create_app(
    settings: AppSettings | None = None,
    *,
    aggregator: WeatherAggregator | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(application: FastAPI):
        app_settings = settings or load_settings()
        weather = aggregator or build_aggregator(app_settings)
        registry = AlertRegistry()
        evaluator = AlertEvaluator(weather, registry)
        alert_scheduler = AlertScheduler(
            evaluator,
            interval_seconds=app_settings.env.alert_poll_interval_seconds,
        )
        if start_scheduler:
            alert_scheduler.start()

        application.state.settings = app_settings
        application.state.aggregator = weather
        application.state.alert_registry = registry
        application.state.alert_evaluator = evaluator
        application.state.alert_scheduler = alert_scheduler
        application.state.started_at_utc = datetime.now(timezone.utc)

        try:
            yield
        finally:
            alert_scheduler.stop()
            registry.clear()

    application = FastAPI(title="WeatherWise", version="0.1.0", lifespan=lifespan)
    application.include_router(router)
    return application


app = create_app()
