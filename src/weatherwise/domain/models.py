from __future__ import annotations

import json
from datetime import date, datetime
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Units = Literal["metric", "imperial"]
AlertConditionType = Literal["rain", "temp_above", "temp_below", "wind_above"]
AlertChannel = Literal["console", "webhook"]
Sensitivity = Literal["low", "medium", "high"]

THRESHOLD_CONDITIONS = ("temp_above", "temp_below", "wind_above")


class _Record(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LocationQuery(_Record):
    city: str | None = None
    country: str | None = None
    lat: float | None = None
    lon: float | None = None

    @field_validator("city", "country")
    @classmethod
    def validate_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        return text or None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def is_resolvable(self) -> bool:
        return self.has_coordinates or self.city is not None

    def canonical(self) -> str:
        """Stable JSON form used as a cache key component."""
        return json.dumps(
            self.model_dump(exclude_none=True),
            sort_keys=True,
            separators=(",", ":"),
        )


class Location(_Record):
    name: str
    lat: float
    lon: float
    country: str | None = None


class WeatherCondition(_Record):
    text: str | None = None
    icon_url: str | None = None
    code: int | None = None


class NormalizedCurrent(_Record):
    provider: str
    location: Location
    observed_at: datetime
    temperature_c: float
    temperature_f: float
    feels_like_c: float | None = None
    feels_like_f: float | None = None
    humidity: float | None = None
    wind_kph: float | None = None
    wind_mph: float | None = None
    wind_dir: str | None = None
    pressure_mb: float | None = None
    uv: float | None = None
    condition: WeatherCondition = Field(default_factory=WeatherCondition)


class NormalizedForecastDay(_Record):
    date: date
    avg_temp_c: float | None = None
    avg_temp_f: float | None = None
    max_temp_c: float | None = None
    max_temp_f: float | None = None
    min_temp_c: float | None = None
    min_temp_f: float | None = None
    chance_of_rain_pct: int | None = Field(default=None, ge=0, le=100)
    chance_of_snow_pct: int | None = Field(default=None, ge=0, le=100)
    condition: WeatherCondition | None = None


class Forecast(_Record):
    provider: str
    location: Location
    days: tuple[NormalizedForecastDay, ...] = ()

    @model_validator(mode="after")
    def validate_day_order(self) -> Forecast:
        dates = [day.date for day in self.days]
        if dates != sorted(dates):
            raise ValueError("forecast days must be ordered ascending by date")
        return self


class NormalizedHistorical(NormalizedCurrent):
    date: date


class AlertCondition(_Record):
    type: AlertConditionType
    threshold: float | None = None
    days_ahead: int | None = Field(default=None, ge=1, le=7)


class AlertDefinition(_Record):
    name: str | None = None
    location: LocationQuery
    condition: AlertCondition
    channel: AlertChannel = "console"
    webhook_url: str | None = None
    sensitivity: Sensitivity | None = None

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("webhook_url must be an absolute http(s) URL")
        return text

    @model_validator(mode="after")
    def validate_definition(self) -> AlertDefinition:
        if not self.location.is_resolvable:
            raise ValueError("alert location must provide a city or a lat/lon pair")
        if self.condition.type in THRESHOLD_CONDITIONS and self.condition.threshold is None:
            raise ValueError(f"condition '{self.condition.type}' requires a threshold")
        if self.channel == "webhook" and self.webhook_url is None:
            raise ValueError("webhook_url is required when channel is 'webhook'")
        return self


class WeatherAlert(AlertDefinition):
    id: str
    created_at: datetime
    last_triggered_at: datetime | None = None
