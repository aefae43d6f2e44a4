from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from weatherwise.adapters.weather import CapabilityUnsupported, TransportError
from weatherwise.domain.models import (
    Forecast,
    Location,
    LocationQuery,
    NormalizedCurrent,
    NormalizedForecastDay,
    NormalizedHistorical,
    WeatherCondition,
)
from weatherwise.storage.cache import TTLCache, WeatherCaches
from weatherwise.units import celsius_to_fahrenheit, kph_to_mph


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_current(provider: str = "fake", *, temp_c: float = 20.0, wind_kph: float | None = 10.0) -> NormalizedCurrent:
    return NormalizedCurrent(
        provider=provider,
        location=Location(name="Berlin", lat=52.52, lon=13.405, country="DE"),
        observed_at=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
        temperature_c=temp_c,
        temperature_f=celsius_to_fahrenheit(temp_c),
        wind_kph=wind_kph,
        wind_mph=kph_to_mph(wind_kph) if wind_kph is not None else None,
        condition=WeatherCondition(text="Clear"),
    )


def make_forecast(provider: str = "fake", *, rain: list[int | None] | None = None) -> Forecast:
    chances = rain if rain is not None else [0]
    start = date(2024, 6, 1)
    return Forecast(
        provider=provider,
        location=Location(name="Berlin", lat=52.52, lon=13.405, country="DE"),
        days=tuple(
            NormalizedForecastDay(date=start + timedelta(days=offset), chance_of_rain_pct=chance)
            for offset, chance in enumerate(chances)
        ),
    )


class FakeProvider:
    """In-memory provider that records calls and can be told to fail."""

    def __init__(
        self,
        name: str = "fake",
        *,
        fail: bool = False,
        historical: bool = True,
        current: NormalizedCurrent | None = None,
        forecast: Forecast | None = None,
    ) -> None:
        self.name = name
        self.fail = fail
        self.historical = historical
        self.current = current or make_current(name)
        self.forecast = forecast or make_forecast(name)
        self.calls: list[tuple[str, tuple]] = []

    def _record(self, kind: str, *args) -> None:
        self.calls.append((kind, args))
        if self.fail:
            raise TransportError(f"{self.name} is down")

    def fetch_current(self, query, units):
        self._record("current", query, units)
        return self.current

    def fetch_forecast(self, query, units, days):
        self._record("forecast", query, units, days)
        return self.forecast.model_copy(update={"days": self.forecast.days[:days]})

    def fetch_historical(self, query, target_date):
        self._record("historical", query, target_date)
        if not self.historical:
            raise CapabilityUnsupported(f"{self.name} has no history")
        return NormalizedHistorical(**self.current.model_dump(), date=target_date)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def caches(clock: FakeClock) -> WeatherCaches:
    return WeatherCaches(
        current=TTLCache(max_entries=10, ttl_seconds=600, clock=clock),
        forecast=TTLCache(max_entries=10, ttl_seconds=10_800, clock=clock),
        historical=TTLCache(max_entries=10, ttl_seconds=600, clock=clock),
    )


@pytest.fixture
def berlin() -> LocationQuery:
    return LocationQuery(city="Berlin", country="DE")


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def current_factory():
    return make_current


@pytest.fixture
def forecast_factory():
    return make_forecast
