from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.request import Request, urlopen

from ..aggregator import WeatherAggregator
from ..domain.models import Sensitivity, WeatherAlert
from .registry import AlertRegistry

LOGGER = logging.getLogger(__name__)

RAIN_CHANCE_THRESHOLD_PCT = 50
DEFAULT_RAIN_DAYS_AHEAD = 1
WEBHOOK_TIMEOUT_SECONDS = 10

SENSITIVITY_FACTORS: dict[str, float] = {
    "high": 0.9,
    "medium": 1.0,
    "low": 1.1,
}

WebhookPoster = Callable[[str, dict[str, Any]], None]


def adjust_threshold(base: float, sensitivity: Sensitivity | None) -> float:
    if sensitivity is None:
        return base
    return base * SENSITIVITY_FACTORS[sensitivity]


def post_json(url: str, body: dict[str, Any]) -> None:
    data = json.dumps(body, ensure_ascii=True).encode("utf-8")
    request = Request(
        url,
        data=data,
        method="POST",
        headers={"Content-Type": "application/json", "User-Agent": "weatherwise/0.1"},
    )
    with urlopen(request, timeout=WEBHOOK_TIMEOUT_SECONDS) as response:
        response.read()


@dataclass(frozen=True, slots=True)
class Trip:
    message: str
    payload: dict[str, Any]


@dataclass(frozen=True, slots=True)
class SweepResult:
    evaluated: int
    triggered: list[str]
    failed: list[str]


class AlertNotifier:
    def __init__(self, *, poster: WebhookPoster = post_json) -> None:
        self._poster = poster

    def notify(self, alert: WeatherAlert, message: str, payload: dict[str, Any]) -> None:
        if alert.channel == "console":
            LOGGER.warning(
                "[ALERT %s] %s",
                alert.id,
                message,
                extra={
                    "alert_id": alert.id,
                    "alert_message": message,
                    "alert_payload": payload,
                },
            )
            return

        if alert.channel == "webhook" and alert.webhook_url:
            body = {
                "id": alert.id,
                "message": message,
                "alert": alert.model_dump(mode="json", by_alias=True),
                "payload": payload,
            }
            try:
                self._poster(alert.webhook_url, body)
            except (OSError, http.client.HTTPException) as exc:
                LOGGER.warning("Webhook notify failed for alert %s: %s", alert.id, exc)


class AlertEvaluator:
    """Evaluate registered alerts against aggregator output and dispatch notifications."""

    def __init__(
        self,
        aggregator: WeatherAggregator,
        registry: AlertRegistry,
        *,
        notifier: AlertNotifier | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._registry = registry
        self._notifier = notifier or AlertNotifier()

    def check(self, alert: WeatherAlert) -> Trip | None:
        condition = alert.condition
        if condition.type == "rain":
            days = condition.days_ahead or DEFAULT_RAIN_DAYS_AHEAD
            forecast = self._aggregator.get_forecast(alert.location, None, days)
            threshold = adjust_threshold(RAIN_CHANCE_THRESHOLD_PCT, alert.sensitivity)
            if any((day.chance_of_rain_pct or 0) >= threshold for day in forecast.days):
                return Trip(
                    message=f"Rain expected within {days} day(s) at {forecast.location.name}",
                    payload=forecast.model_dump(mode="json", by_alias=True),
                )
            return None

        if condition.threshold is None:
            return None

        current = self._aggregator.get_current(alert.location)
        threshold = adjust_threshold(condition.threshold, alert.sensitivity)
        payload = current.model_dump(mode="json", by_alias=True)
        place = current.location.name

        if condition.type == "temp_above" and current.temperature_c >= threshold:
            return Trip(f"Temperature above {threshold:g}°C at {place}", payload)
        if condition.type == "temp_below" and current.temperature_c <= threshold:
            return Trip(f"Temperature below {threshold:g}°C at {place}", payload)
        if condition.type == "wind_above" and (current.wind_kph or 0) >= threshold:
            return Trip(f"Wind speed above {threshold:g} kph at {place}", payload)
        return None

    def evaluate(self, alert: WeatherAlert) -> bool:
        trip = self.check(alert)
        if trip is None:
            return False

        triggered_at = datetime.now(timezone.utc)
        stamped = self._registry.mark_triggered(alert.id, triggered_at)
        if stamped is None:
            stamped = alert.model_copy(update={"last_triggered_at": triggered_at})
        self._notifier.notify(stamped, trip.message, trip.payload)
        return True

    def sweep(self) -> SweepResult:
        alerts = self._registry.list()
        triggered: list[str] = []
        failed: list[str] = []
        for alert in alerts:
            try:
                if self.evaluate(alert):
                    triggered.append(alert.id)
            except Exception:
                LOGGER.exception("Alert evaluation failed: %s", alert.id)
                failed.append(alert.id)

        LOGGER.debug(
            "Alert sweep evaluated %d alert(s), %d triggered, %d failed",
            len(alerts),
            len(triggered),
            len(failed),
        )
        return SweepResult(evaluated=len(alerts), triggered=triggered, failed=failed)
