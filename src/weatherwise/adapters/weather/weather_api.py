from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any
from urllib.parse import urlencode

from ...domain.models import (
    Forecast,
    Location,
    LocationQuery,
    NormalizedCurrent,
    NormalizedForecastDay,
    NormalizedHistorical,
    Units,
    WeatherCondition,
)
from ...units import celsius_to_fahrenheit, fahrenheit_to_celsius, kph_to_mph, mph_to_kph
from .base import (
    DEFAULT_TIMEOUT_SECONDS,
    InvalidQuery,
    JsonFetcher,
    UpstreamFormatError,
    coerce_float,
    coerce_optional_float,
    coerce_optional_int,
    fetch_json,
    require_mapping,
)

WEATHERAPI_BASE_URL = "https://api.weatherapi.com/v1"


def _temperature_pair(celsius: Any, fahrenheit: Any) -> tuple[float | None, float | None]:
    c_value = coerce_optional_float(celsius)
    f_value = coerce_optional_float(fahrenheit)
    if c_value is None and f_value is not None:
        c_value = fahrenheit_to_celsius(f_value)
    if f_value is None and c_value is not None:
        f_value = celsius_to_fahrenheit(c_value)
    return c_value, f_value


def _wind_pair(kph: Any, mph: Any) -> tuple[float | None, float | None]:
    kph_value = coerce_optional_float(kph)
    mph_value = coerce_optional_float(mph)
    if kph_value is None and mph_value is not None:
        kph_value = mph_to_kph(mph_value)
    if mph_value is None and kph_value is not None:
        mph_value = kph_to_mph(kph_value)
    return kph_value, mph_value


def _first_number(*values: Any) -> float | None:
    for value in values:
        number = coerce_optional_float(value)
        if number is not None:
            return number
    return None


def _condition(raw: Any) -> WeatherCondition:
    if not isinstance(raw, dict):
        return WeatherCondition()
    icon = raw.get("icon")
    if isinstance(icon, str) and icon.startswith("//"):
        icon = f"https:{icon}"
    return WeatherCondition(
        text=raw.get("text"),
        icon_url=icon or None,
        code=coerce_optional_int(raw.get("code")),
    )


def _location(payload: dict[str, Any]) -> Location:
    location = require_mapping(payload.get("location"), field_name="location")
    return Location(
        name=location.get("name") or "Unknown",
        lat=coerce_float(location.get("lat"), field_name="location.lat"),
        lon=coerce_float(location.get("lon"), field_name="location.lon"),
        country=location.get("country"),
    )


def _observed_at(current: dict[str, Any]) -> datetime:
    epoch = coerce_optional_float(current.get("last_updated_epoch"))
    if epoch is not None:
        return datetime.fromtimestamp(epoch, tz=timezone.utc)
    raw = current.get("last_updated")
    if isinstance(raw, str):
        try:
            return datetime.strptime(raw, "%Y-%m-%d %H:%M").replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _parse_date(raw: Any, *, field_name: str) -> date:
    try:
        return date.fromisoformat(str(raw))
    except ValueError as exc:
        raise UpstreamFormatError(f"Invalid date value for {field_name}") from exc


class WeatherApiAdapter:
    """Adapter for weatherapi.com, which reports both unit systems natively."""

    name = "weatherapi"

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        fetcher: JsonFetcher = fetch_json,
        base_url: str = WEATHERAPI_BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")

    @staticmethod
    def _query_text(query: LocationQuery) -> str:
        if query.has_coordinates:
            return f"{query.lat},{query.lon}"
        if query.city:
            return f"{query.city},{query.country}" if query.country else query.city
        raise InvalidQuery("WeatherAPI: provide city or lat/lon")

    def _get(self, endpoint: str, query: LocationQuery, **extra: str) -> dict[str, Any]:
        params = {"key": self._api_key, "q": self._query_text(query), **extra}
        url = f"{self._base_url}/{endpoint}?{urlencode(params)}"
        return self._fetcher(url, self._timeout_seconds)

    def fetch_current(self, query: LocationQuery, units: Units) -> NormalizedCurrent:
        payload = self._get("current.json", query, aqi="no")
        current = require_mapping(payload.get("current"), field_name="current")

        temp_c, temp_f = _temperature_pair(current.get("temp_c"), current.get("temp_f"))
        if temp_c is None or temp_f is None:
            raise UpstreamFormatError("WeatherAPI current payload did not include a temperature")
        feels_c, feels_f = _temperature_pair(current.get("feelslike_c"), current.get("feelslike_f"))
        wind_kph, wind_mph = _wind_pair(current.get("wind_kph"), current.get("wind_mph"))

        return NormalizedCurrent(
            provider=self.name,
            location=_location(payload),
            observed_at=_observed_at(current),
            temperature_c=temp_c,
            temperature_f=temp_f,
            feels_like_c=feels_c,
            feels_like_f=feels_f,
            humidity=coerce_optional_float(current.get("humidity")),
            wind_kph=wind_kph,
            wind_mph=wind_mph,
            wind_dir=current.get("wind_dir"),
            pressure_mb=coerce_optional_float(current.get("pressure_mb")),
            uv=coerce_optional_float(current.get("uv")),
            condition=_condition(current.get("condition")),
        )

    def fetch_forecast(self, query: LocationQuery, units: Units, days: int) -> Forecast:
        payload = self._get("forecast.json", query, days=str(days), aqi="no", alerts="no")
        forecast = require_mapping(payload.get("forecast"), field_name="forecast")
        raw_days = forecast.get("forecastday")
        if not isinstance(raw_days, list):
            raise UpstreamFormatError("WeatherAPI forecast payload did not include 'forecastday'")

        forecast_days: list[NormalizedForecastDay] = []
        for raw_day in raw_days:
            if not isinstance(raw_day, dict):
                raise UpstreamFormatError("WeatherAPI forecast day was not an object")
            summary = raw_day.get("day") if isinstance(raw_day.get("day"), dict) else {}
            avg_c, avg_f = _temperature_pair(summary.get("avgtemp_c"), summary.get("avgtemp_f"))
            max_c, max_f = _temperature_pair(summary.get("maxtemp_c"), summary.get("maxtemp_f"))
            min_c, min_f = _temperature_pair(summary.get("mintemp_c"), summary.get("mintemp_f"))
            forecast_days.append(
                NormalizedForecastDay(
                    date=_parse_date(raw_day.get("date"), field_name="forecastday[].date"),
                    avg_temp_c=avg_c,
                    avg_temp_f=avg_f,
                    max_temp_c=max_c,
                    max_temp_f=max_f,
                    min_temp_c=min_c,
                    min_temp_f=min_f,
                    chance_of_rain_pct=coerce_optional_int(summary.get("daily_chance_of_rain")),
                    chance_of_snow_pct=coerce_optional_int(summary.get("daily_chance_of_snow")),
                    condition=_condition(summary.get("condition")),
                )
            )

        forecast_days.sort(key=lambda day: day.date)
        return Forecast(
            provider=self.name,
            location=_location(payload),
            days=tuple(forecast_days[: max(days, 0)]),
        )

    def fetch_historical(self, query: LocationQuery, target_date: date) -> NormalizedHistorical:
        payload = self._get("history.json", query, dt=target_date.isoformat())
        forecast = payload.get("forecast") if isinstance(payload.get("forecast"), dict) else {}
        raw_days = forecast.get("forecastday")
        raw_day = raw_days[0] if isinstance(raw_days, list) and raw_days else {}
        if not isinstance(raw_day, dict):
            raise UpstreamFormatError("WeatherAPI history day was not an object")
        summary = raw_day.get("day") if isinstance(raw_day.get("day"), dict) else {}
        current = payload.get("current") if isinstance(payload.get("current"), dict) else {}

        day_value = (
            _parse_date(raw_day["date"], field_name="forecastday[].date")
            if raw_day.get("date")
            else target_date
        )
        temp_c, temp_f = _temperature_pair(
            _first_number(summary.get("avgtemp_c"), current.get("temp_c")),
            _first_number(summary.get("avgtemp_f"), current.get("temp_f")),
        )
        if temp_c is None or temp_f is None:
            raise UpstreamFormatError("WeatherAPI history payload did not include a temperature")
        feels_c, feels_f = _temperature_pair(current.get("feelslike_c"), current.get("feelslike_f"))
        wind_kph, wind_mph = _wind_pair(
            _first_number(summary.get("maxwind_kph"), current.get("wind_kph")),
            _first_number(summary.get("maxwind_mph"), current.get("wind_mph")),
        )

        return NormalizedHistorical(
            provider=self.name,
            date=day_value,
            location=_location(payload),
            observed_at=datetime.combine(day_value, time.min, tzinfo=timezone.utc),
            temperature_c=temp_c,
            temperature_f=temp_f,
            feels_like_c=feels_c,
            feels_like_f=feels_f,
            humidity=_first_number(summary.get("avghumidity"), current.get("humidity")),
            wind_kph=wind_kph,
            wind_mph=wind_mph,
            wind_dir=current.get("wind_dir"),
            pressure_mb=coerce_optional_float(current.get("pressure_mb")),
            uv=_first_number(summary.get("uv"), current.get("uv")),
            condition=_condition(summary.get("condition")),
        )
