from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from statistics import fmean
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
from ...units import (
    celsius_to_fahrenheit,
    fahrenheit_to_celsius,
    kph_to_mph,
    mph_to_kph,
    ms_to_kph,
    round_half_up,
)
from .base import (
    DEFAULT_TIMEOUT_SECONDS,
    CapabilityUnsupported,
    InvalidQuery,
    JsonFetcher,
    UpstreamFormatError,
    coerce_float,
    coerce_optional_float,
    coerce_optional_int,
    fetch_json,
    require_mapping,
)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
OPENWEATHER_ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"


def _dual_temperature(value: float, units: Units) -> tuple[float, float]:
    if units == "imperial":
        return fahrenheit_to_celsius(value), value
    return value, celsius_to_fahrenheit(value)


def _condition(raw_weather: Any) -> WeatherCondition:
    if not isinstance(raw_weather, list) or not raw_weather or not isinstance(raw_weather[0], dict):
        return WeatherCondition(text="Unknown")
    first = raw_weather[0]
    icon = first.get("icon")
    return WeatherCondition(
        text=first.get("description") or "Unknown",
        icon_url=OPENWEATHER_ICON_URL.format(icon=icon) if icon else None,
        code=coerce_optional_int(first.get("id")),
    )


def _has_volume(slot: dict[str, Any], key: str) -> bool:
    block = slot.get(key)
    if not isinstance(block, dict):
        return False
    volume = coerce_optional_float(block.get("3h"))
    return bool(volume)


@dataclass
class _DayBucket:
    temps_c: list[float] = field(default_factory=list)
    temps_f: list[float] = field(default_factory=list)
    rain_slots: int = 0
    snow_slots: int = 0
    condition: WeatherCondition | None = None

    @property
    def total_slots(self) -> int:
        return len(self.temps_c)

    def percentage(self, count: int) -> int:
        return round_half_up(count / self.total_slots * 100)


class OpenWeatherAdapter:
    """Adapter for the OpenWeather 2.5 current/forecast endpoints.

    Values arrive in the requested unit system only, so the other system is
    derived locally. The forecast endpoint returns 3-hour slots that are
    bucketed into UTC calendar days.
    """

    name = "openweather"

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        fetcher: JsonFetcher = fetch_json,
        base_url: str = OPENWEATHER_BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")

    def _location_params(self, query: LocationQuery) -> dict[str, str]:
        if query.has_coordinates:
            return {"lat": f"{query.lat}", "lon": f"{query.lon}"}
        if query.city:
            text = f"{query.city},{query.country}" if query.country else query.city
            return {"q": text}
        raise InvalidQuery("OpenWeather: provide city or lat/lon")

    def _get(self, endpoint: str, query: LocationQuery, units: Units) -> dict[str, Any]:
        params = self._location_params(query)
        params["appid"] = self._api_key
        params["units"] = "imperial" if units == "imperial" else "metric"
        url = f"{self._base_url}/{endpoint}?{urlencode(params)}"
        return self._fetcher(url, self._timeout_seconds)

    def fetch_current(self, query: LocationQuery, units: Units) -> NormalizedCurrent:
        payload = self._get("weather", query, units)
        main = require_mapping(payload.get("main"), field_name="main")
        coord = require_mapping(payload.get("coord"), field_name="coord")
        wind = payload.get("wind") if isinstance(payload.get("wind"), dict) else {}
        sys_block = payload.get("sys") if isinstance(payload.get("sys"), dict) else {}

        lat = coerce_float(coord.get("lat"), field_name="coord.lat")
        lon = coerce_float(coord.get("lon"), field_name="coord.lon")
        temp_c, temp_f = _dual_temperature(
            coerce_float(main.get("temp"), field_name="main.temp"), units
        )

        feels_c = feels_f = None
        raw_feels = coerce_optional_float(main.get("feels_like"))
        if raw_feels is not None:
            feels_c, feels_f = _dual_temperature(raw_feels, units)

        wind_kph = wind_mph = None
        raw_wind = coerce_optional_float(wind.get("speed"))
        if raw_wind is not None:
            if units == "imperial":
                wind_mph, wind_kph = raw_wind, mph_to_kph(raw_wind)
            else:
                wind_kph = ms_to_kph(raw_wind)
                wind_mph = kph_to_mph(wind_kph)

        wind_deg = coerce_optional_int(wind.get("deg"))
        observed = coerce_optional_float(payload.get("dt"))

        return NormalizedCurrent(
            provider=self.name,
            location=Location(
                name=payload.get("name") or f"{lat},{lon}",
                lat=lat,
                lon=lon,
                country=sys_block.get("country"),
            ),
            observed_at=(
                datetime.fromtimestamp(observed, tz=timezone.utc)
                if observed is not None
                else datetime.now(timezone.utc)
            ),
            temperature_c=temp_c,
            temperature_f=temp_f,
            feels_like_c=feels_c,
            feels_like_f=feels_f,
            humidity=coerce_optional_float(main.get("humidity")),
            wind_kph=wind_kph,
            wind_mph=wind_mph,
            wind_dir=f"{wind_deg}°" if wind_deg is not None else None,
            pressure_mb=coerce_optional_float(main.get("pressure")),
            condition=_condition(payload.get("weather")),
        )

    def fetch_forecast(self, query: LocationQuery, units: Units, days: int) -> Forecast:
        payload = self._get("forecast", query, units)
        city = require_mapping(payload.get("city"), field_name="city")
        coord = require_mapping(city.get("coord"), field_name="city.coord")
        slots = payload.get("list")
        if not isinstance(slots, list):
            raise UpstreamFormatError("OpenWeather forecast payload did not include 'list'")

        lat = coerce_float(coord.get("lat"), field_name="city.coord.lat")
        lon = coerce_float(coord.get("lon"), field_name="city.coord.lon")
        return Forecast(
            provider=self.name,
            location=Location(
                name=city.get("name") or f"{lat},{lon}",
                lat=lat,
                lon=lon,
                country=city.get("country"),
            ),
            days=tuple(self.bucket_slots(slots, units=units, days=days)),
        )

    def fetch_historical(self, query: LocationQuery, target_date: date) -> NormalizedHistorical:
        raise CapabilityUnsupported("OpenWeather historical data is not available on this plan")

    @staticmethod
    def bucket_slots(slots: list[Any], *, units: Units, days: int) -> list[NormalizedForecastDay]:
        """Group sub-daily samples by UTC date into daily summaries."""
        buckets: dict[date, _DayBucket] = {}
        for slot in slots:
            if not isinstance(slot, dict):
                raise UpstreamFormatError("OpenWeather forecast slot was not an object")
            timestamp = coerce_float(slot.get("dt"), field_name="list[].dt")
            main = require_mapping(slot.get("main"), field_name="list[].main")
            temp_c, temp_f = _dual_temperature(
                coerce_float(main.get("temp"), field_name="list[].main.temp"), units
            )

            slot_date = datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
            bucket = buckets.setdefault(slot_date, _DayBucket())
            bucket.temps_c.append(temp_c)
            bucket.temps_f.append(temp_f)
            if _has_volume(slot, "rain"):
                bucket.rain_slots += 1
            if _has_volume(slot, "snow"):
                bucket.snow_slots += 1
            if slot.get("weather"):
                bucket.condition = _condition(slot.get("weather"))

        forecast_days: list[NormalizedForecastDay] = []
        for day in sorted(buckets)[: max(days, 0)]:
            bucket = buckets[day]
            forecast_days.append(
                NormalizedForecastDay(
                    date=day,
                    avg_temp_c=fmean(bucket.temps_c),
                    avg_temp_f=fmean(bucket.temps_f),
                    max_temp_c=max(bucket.temps_c),
                    max_temp_f=max(bucket.temps_f),
                    min_temp_c=min(bucket.temps_c),
                    min_temp_f=min(bucket.temps_f),
                    chance_of_rain_pct=bucket.percentage(bucket.rain_slots),
                    chance_of_snow_pct=bucket.percentage(bucket.snow_slots),
                    condition=bucket.condition,
                )
            )
        return forecast_days
