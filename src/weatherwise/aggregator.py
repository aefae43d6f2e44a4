from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Generic, Literal, Sequence, TypeVar

from .adapters.weather import (
    CapabilityUnsupported,
    OpenWeatherAdapter,
    WeatherAdapterError,
    WeatherApiAdapter,
    WeatherProvider,
)
from .domain.models import Forecast, LocationQuery, NormalizedCurrent, NormalizedHistorical, Units
from .settings import AppSettings
from .storage.cache import Clock, TTLCache, WeatherCaches, utc_now

LOGGER = logging.getLogger(__name__)

QueryKind = Literal["current", "forecast", "historical"]
T = TypeVar("T")


class NoProviderAvailable(RuntimeError):
    """Raised when no configured provider could answer a query.

    ``reason`` is ``"unconfigured"`` when no provider is configured at all and
    ``"exhausted"`` when every configured provider failed this call.
    """

    def __init__(
        self,
        kind: QueryKind,
        reason: Literal["unconfigured", "exhausted"],
        attempts: Sequence[ProviderAttempt] = (),
    ) -> None:
        self.kind = kind
        self.reason = reason
        self.attempts = tuple(attempts)
        if reason == "unconfigured":
            message = f"No weather provider configured for {kind} data"
        else:
            tried = ", ".join(attempt.provider for attempt in self.attempts) or "none"
            message = f"All weather providers failed for {kind} data (tried: {tried})"
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class ProviderAttempt:
    provider: str
    ok: bool
    error: str | None = None
    unsupported: bool = False


@dataclass(frozen=True)
class Resolution(Generic[T]):
    value: T
    key: str
    from_cache: bool = False
    attempts: tuple[ProviderAttempt, ...] = field(default_factory=tuple)

    @property
    def provider(self) -> str:
        return getattr(self.value, "provider")


def cache_key(kind: QueryKind, query: LocationQuery, **params: Any) -> str:
    """Build a process-independent key from the query kind, location and parameters."""
    extra = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return f"{kind}:{query.canonical()}:{extra}"


class WeatherAggregator:
    """Answer weather queries from cache or the first provider that succeeds."""

    def __init__(
        self,
        providers: Sequence[WeatherProvider],
        caches: WeatherCaches,
        *,
        default_units: Units = "metric",
    ) -> None:
        self._providers = tuple(providers)
        self._caches = caches
        self.default_units = default_units

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def get_current(self, query: LocationQuery, units: Units | None = None) -> NormalizedCurrent:
        return self.resolve_current(query, units).value

    def get_forecast(
        self,
        query: LocationQuery,
        units: Units | None = None,
        days: int = 3,
    ) -> Forecast:
        return self.resolve_forecast(query, units, days).value

    def get_historical(self, query: LocationQuery, target_date: date) -> NormalizedHistorical:
        return self.resolve_historical(query, target_date).value

    def resolve_current(
        self,
        query: LocationQuery,
        units: Units | None = None,
    ) -> Resolution[NormalizedCurrent]:
        resolved_units = units or self.default_units
        return self._resolve(
            "current",
            self._caches.current,
            cache_key("current", query, units=resolved_units),
            lambda provider: provider.fetch_current(query, resolved_units),
        )

    def resolve_forecast(
        self,
        query: LocationQuery,
        units: Units | None = None,
        days: int = 3,
    ) -> Resolution[Forecast]:
        resolved_units = units or self.default_units
        return self._resolve(
            "forecast",
            self._caches.forecast,
            cache_key("forecast", query, units=resolved_units, days=days),
            lambda provider: provider.fetch_forecast(query, resolved_units, days),
        )

    def resolve_historical(
        self,
        query: LocationQuery,
        target_date: date,
    ) -> Resolution[NormalizedHistorical]:
        return self._resolve(
            "historical",
            self._caches.historical,
            cache_key("historical", query, date=target_date.isoformat()),
            lambda provider: provider.fetch_historical(query, target_date),
        )

    def _resolve(
        self,
        kind: QueryKind,
        store: TTLCache[T],
        key: str,
        invoke: Callable[[WeatherProvider], T],
    ) -> Resolution[T]:
        cached = store.get(key)
        if cached is not None:
            LOGGER.debug("Cache hit for %s", key)
            return Resolution(value=cached, key=key, from_cache=True)

        if not self._providers:
            raise NoProviderAvailable(kind, "unconfigured")

        attempts: list[ProviderAttempt] = []
        for provider in self._providers:
            try:
                value = invoke(provider)
            except CapabilityUnsupported as exc:
                LOGGER.info("Provider '%s' does not support %s data: %s", provider.name, kind, exc)
                attempts.append(
                    ProviderAttempt(provider=provider.name, ok=False, error=str(exc), unsupported=True)
                )
                continue
            except WeatherAdapterError as exc:
                LOGGER.warning("Provider '%s' failed for %s data: %s", provider.name, kind, exc)
                attempts.append(ProviderAttempt(provider=provider.name, ok=False, error=str(exc)))
                continue
            except Exception as exc:
                LOGGER.exception("Provider '%s' raised unexpectedly for %s data", provider.name, kind)
                attempts.append(ProviderAttempt(provider=provider.name, ok=False, error=repr(exc)))
                continue

            attempts.append(ProviderAttempt(provider=provider.name, ok=True))
            store.set(key, value)
            return Resolution(value=value, key=key, attempts=tuple(attempts))

        raise NoProviderAvailable(kind, "exhausted", attempts)


def build_providers(settings: AppSettings) -> list[WeatherProvider]:
    """Instantiate providers in configured priority order, skipping those without credentials."""
    timeout = settings.yaml.providers.timeout_seconds
    providers: list[WeatherProvider] = []
    for name in settings.yaml.providers.priority:
        if name == "weatherapi" and settings.env.weatherapi_api_key:
            providers.append(
                WeatherApiAdapter(api_key=settings.env.weatherapi_api_key, timeout_seconds=timeout)
            )
        elif name == "openweather" and settings.env.openweather_api_key:
            providers.append(
                OpenWeatherAdapter(api_key=settings.env.openweather_api_key, timeout_seconds=timeout)
            )
        else:
            LOGGER.info("Weather provider '%s' has no API key and is disabled", name)
    return providers


def build_caches(settings: AppSettings, *, clock: Clock = utc_now) -> WeatherCaches:
    stores = settings.yaml.cache
    return WeatherCaches(
        current=TTLCache(
            max_entries=stores.current.max_entries,
            ttl_seconds=settings.env.cache_ttl_seconds,
            clock=clock,
        ),
        forecast=TTLCache(
            max_entries=stores.forecast.max_entries,
            ttl_seconds=settings.env.forecast_cache_ttl_seconds,
            clock=clock,
        ),
        historical=TTLCache(
            max_entries=stores.historical.max_entries,
            ttl_seconds=settings.env.historical_cache_ttl_seconds,
            clock=clock,
        ),
    )


def build_aggregator(settings: AppSettings) -> WeatherAggregator:
    return WeatherAggregator(
        build_providers(settings),
        build_caches(settings),
        default_units=settings.env.default_units,
    )
