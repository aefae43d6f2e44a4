import pytest
from pydantic import ValidationError

from weatherwise.aggregator import build_caches
from weatherwise.settings import EnvSettings, WeatherwiseYamlSettings, build_settings


def test_env_defaults(monkeypatch) -> None:
    for name in ("OPENWEATHER_API_KEY", "WEATHERAPI_API_KEY", "DEFAULT_UNITS", "WEATHERWISE_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)

    settings = build_settings(EnvSettings(_env_file=None))

    assert settings.env.default_units == "metric"
    assert settings.env.cache_ttl_seconds == 600
    assert settings.env.forecast_cache_ttl_seconds == 10_800
    assert settings.env.alert_poll_interval_seconds == 600
    assert settings.yaml.providers.priority == ["weatherapi", "openweather"]
    assert settings.provider_status() == {"openweather": False, "weatherapi": False}


def test_env_values_are_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("WEATHERAPI_API_KEY", " abc ")
    monkeypatch.setenv("DEFAULT_UNITS", "imperial")
    monkeypatch.setenv("FORECAST_CACHE_TTL_SECONDS", "60")

    env = EnvSettings(_env_file=None)

    assert env.weatherapi_api_key == "abc"
    assert env.default_units == "imperial"
    assert env.forecast_cache_ttl_seconds == 60


def test_invalid_units_are_rejected(monkeypatch) -> None:
    monkeypatch.setenv("DEFAULT_UNITS", "kelvin")

    with pytest.raises(ValidationError):
        EnvSettings(_env_file=None)


def test_yaml_config_is_loaded(tmp_path) -> None:
    config = tmp_path / "weatherwise.yaml"
    config.write_text(
        "cache:\n"
        "  forecast:\n"
        "    max_entries: 5\n"
        "providers:\n"
        "  priority: [openweather, openweather, weatherapi]\n"
        "  timeout_seconds: 3\n",
        encoding="utf-8",
    )

    settings = build_settings(EnvSettings(_env_file=None, weatherwise_config_path=config))
    caches = build_caches(settings)

    assert settings.config_path == config
    assert settings.yaml.providers.priority == ["openweather", "weatherapi"]
    assert settings.yaml.providers.timeout_seconds == 3
    assert caches.forecast.max_entries == 5
    assert caches.forecast.ttl_seconds == settings.env.forecast_cache_ttl_seconds
    assert caches.current.max_entries == 500


def test_missing_yaml_config_is_an_error(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        build_settings(EnvSettings(_env_file=None, weatherwise_config_path=tmp_path / "missing.yaml"))


def test_unknown_provider_in_priority_is_rejected() -> None:
    with pytest.raises(ValidationError):
        WeatherwiseYamlSettings.model_validate({"providers": {"priority": ["darksky"]}})
