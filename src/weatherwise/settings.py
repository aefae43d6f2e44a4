from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import Units

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ProviderName = Literal["weatherapi", "openweather"]
DEFAULT_PROVIDER_PRIORITY: list[ProviderName] = ["weatherapi", "openweather"]


class CacheStoreSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_entries: int = Field(default=500, ge=1, le=100_000)


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: CacheStoreSettings = Field(default_factory=CacheStoreSettings)
    forecast: CacheStoreSettings = Field(default_factory=CacheStoreSettings)
    historical: CacheStoreSettings = Field(default_factory=CacheStoreSettings)


class ProviderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    priority: list[ProviderName] = Field(default_factory=lambda: list(DEFAULT_PROVIDER_PRIORITY))
    timeout_seconds: float = Field(default=10, gt=0, le=120)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, values: list[ProviderName]) -> list[ProviderName]:
        deduplicated = list(dict.fromkeys(values))
        if not deduplicated:
            raise ValueError("providers.priority must list at least one provider")
        return deduplicated


class WeatherwiseYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cache: CacheSettings = Field(default_factory=CacheSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openweather_api_key: str = ""
    weatherapi_api_key: str = ""
    default_units: Units = "metric"
    cache_ttl_seconds: int = Field(default=600, ge=0)
    forecast_cache_ttl_seconds: int = Field(default=10_800, ge=0)
    historical_cache_ttl_seconds: int = Field(default=600, ge=0)
    alert_poll_interval_seconds: int = Field(default=600, ge=1)
    weatherwise_config_path: Path | None = None

    @field_validator("openweather_api_key", "weatherapi_api_key")
    @classmethod
    def validate_api_key(cls, value: str) -> str:
        return value.strip()


class AppSettings(BaseModel):
    env: EnvSettings
    yaml: WeatherwiseYamlSettings
    config_path: Path | None = None

    def provider_status(self) -> dict[str, bool]:
        return {
            "openweather": bool(self.env.openweather_api_key),
            "weatherapi": bool(self.env.weatherapi_api_key),
        }


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path | None) -> WeatherwiseYamlSettings:
    if path is None:
        return WeatherwiseYamlSettings()
    if not path.exists():
        raise FileNotFoundError(f"Weatherwise config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Weatherwise config must be a YAML mapping/object at the top level")
    return WeatherwiseYamlSettings.model_validate(raw_config)


def build_settings(env: EnvSettings) -> AppSettings:
    config_path = (
        _resolve_project_path(env.weatherwise_config_path)
        if env.weatherwise_config_path is not None
        else None
    )
    return AppSettings(env=env, yaml=_load_yaml_settings(config_path), config_path=config_path)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return build_settings(EnvSettings())
