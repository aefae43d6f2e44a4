from __future__ import annotations

import http.client
import json
from datetime import date
from typing import Any, Callable, Protocol
from urllib.request import Request, urlopen

from ...domain.models import (
    Forecast,
    LocationQuery,
    NormalizedCurrent,
    NormalizedHistorical,
    Units,
)

DEFAULT_TIMEOUT_SECONDS = 10
USER_AGENT = "weatherwise/0.1"

JsonFetcher = Callable[[str, float], dict[str, Any]]


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider request cannot be completed."""


class InvalidQuery(WeatherAdapterError):
    """Raised when a location query resolves to neither a city nor a lat/lon pair."""


class CapabilityUnsupported(WeatherAdapterError):
    """Raised when a provider does not offer the requested kind of data."""


class TransportError(WeatherAdapterError):
    """Raised on network or HTTP failures."""


class UpstreamFormatError(WeatherAdapterError):
    """Raised when a provider response does not have the expected shape."""


class WeatherProvider(Protocol):
    name: str

    def fetch_current(self, query: LocationQuery, units: Units) -> NormalizedCurrent:
        """Fetch normalized current conditions for the query."""

    def fetch_forecast(self, query: LocationQuery, units: Units, days: int) -> Forecast:
        """Fetch a normalized daily forecast truncated to ``days`` entries."""

    def fetch_historical(self, query: LocationQuery, target_date: date) -> NormalizedHistorical:
        """Fetch the daily summary for a past date or raise CapabilityUnsupported."""


def fetch_json(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> dict[str, Any]:
    request = Request(url, headers={"User-Agent": USER_AGENT, "Accept": "application/json"})
    try:
        with urlopen(request, timeout=timeout) as response:
            raw = response.read()
    except (OSError, http.client.HTTPException) as exc:
        raise TransportError(f"Request to weather provider failed: {exc}") from exc

    try:
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise UpstreamFormatError("Weather provider returned invalid JSON") from exc

    if not isinstance(payload, dict):
        raise UpstreamFormatError("Unexpected weather provider response shape")
    return payload


def require_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise UpstreamFormatError(f"Missing or invalid object for {field_name}")
    return value


def coerce_float(value: Any, *, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise UpstreamFormatError(f"Invalid numeric value for {field_name}") from exc


def coerce_optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def coerce_optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None
