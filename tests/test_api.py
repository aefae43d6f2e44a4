import pytest
from fastapi.testclient import TestClient

from weatherwise.aggregator import WeatherAggregator
from weatherwise.main import create_app
from weatherwise.settings import AppSettings, EnvSettings, WeatherwiseYamlSettings


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        env=EnvSettings(_env_file=None, weatherapi_api_key="wa", openweather_api_key=""),
        yaml=WeatherwiseYamlSettings(),
    )


@pytest.fixture
def provider(provider_factory, current_factory, forecast_factory):
    return provider_factory(
        "weatherapi",
        current=current_factory("weatherapi", temp_c=21.5),
        forecast=forecast_factory("weatherapi", rain=[20, 80, 0]),
    )


@pytest.fixture
def client(settings, caches, provider):
    application = create_app(
        settings,
        aggregator=WeatherAggregator([provider], caches),
        start_scheduler=False,
    )
    with TestClient(application) as test_client:
        yield test_client


def test_health_reports_providers(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["providers"] == ["weatherapi"]
    assert data["scheduler_running"] is False
    assert data["alert_count"] == 0


def test_provider_status(client) -> None:
    assert client.get("/providers").json() == {"openweather": False, "weatherapi": True}


def test_current_weather_is_normalized_and_cached(client, provider) -> None:
    first = client.get("/weather/current", params={"city": "Berlin", "country": "DE"})
    second = client.get("/weather/current", params={"city": "Berlin", "country": "DE"})

    assert first.status_code == 200
    data = first.json()
    assert data["provider"] == "weatherapi"
    assert data["temperatureC"] == 21.5
    assert "temperatureF" in data
    assert first.json() == second.json()
    assert len(provider.calls) == 1


def test_forecast_respects_day_bounds(client) -> None:
    response = client.get("/weather/forecast", params={"lat": 52.5, "lon": 13.4, "days": 2})

    assert response.status_code == 200
    assert [day["chanceOfRainPct"] for day in response.json()["days"]] == [20, 80]
    assert client.get("/weather/forecast", params={"city": "Berlin", "days": 8}).status_code == 422


def test_historical_weather(client) -> None:
    response = client.get("/weather/historical", params={"city": "Berlin", "date": "2024-05-01"})

    assert response.status_code == 200
    assert response.json()["date"] == "2024-05-01"


def test_missing_location_is_rejected(client, provider) -> None:
    response = client.get("/weather/current", params={"lat": 52.5})

    assert response.status_code == 422
    assert provider.calls == []


def test_provider_outage_maps_to_503(client, provider) -> None:
    provider.fail = True

    response = client.get("/weather/current", params={"city": "Paris"})

    assert response.status_code == 503
    assert response.json()["detail"]["reason"] == "exhausted"


def test_insights(client) -> None:
    response = client.post("/insights", json={"activity": "hiking", "location": {"city": "Berlin"}})

    assert response.status_code == 200
    data = response.json()
    assert data["riskLevel"] == "low"
    assert "Check trail conditions and bring appropriate footwear." in data["tips"]


def test_alert_lifecycle(client) -> None:
    created = client.post(
        "/alerts",
        json={
            "name": "heat",
            "location": {"city": "Berlin"},
            "condition": {"type": "temp_above", "threshold": 30},
            "channel": "console",
            "sensitivity": "high",
        },
    )
    assert created.status_code == 201
    alert = created.json()
    assert alert["id"]
    assert alert["createdAt"]

    listed = client.get("/alerts").json()
    assert [item["id"] for item in listed] == [alert["id"]]

    assert client.delete(f"/alerts/{alert['id']}").json() == {"removed": True, "id": alert["id"]}
    assert client.delete(f"/alerts/{alert['id']}").json() == {"removed": False, "id": alert["id"]}
    assert client.get("/alerts").json() == []


def test_webhook_alert_requires_url(client) -> None:
    response = client.post(
        "/alerts",
        json={"location": {"city": "Berlin"}, "condition": {"type": "rain"}, "channel": "webhook"},
    )

    assert response.status_code == 422
