from weatherwise.insights import assess_activity, rain_risk_pct


def test_mild_weather_is_low_risk(current_factory, forecast_factory) -> None:
    result = assess_activity("reading", current_factory(temp_c=18.0, wind_kph=5.0), forecast_factory(rain=[10]))

    assert result.risk_level == "low"
    assert result.tips == []
    assert result.summary == "Risk for reading: low. Temp 18°C, wind 5 kph, rain chance 10%"


def test_rain_chance_drives_risk(current_factory, forecast_factory) -> None:
    moderate = assess_activity("walk", current_factory(temp_c=18.0, wind_kph=0.0), forecast_factory(rain=[45]))
    high = assess_activity("walk", current_factory(temp_c=18.0, wind_kph=0.0), forecast_factory(rain=[75]))

    assert moderate.risk_level == "moderate"
    assert high.risk_level == "high"


def test_moderate_signals_are_skipped_once_risk_is_high(current_factory, forecast_factory) -> None:
    result = assess_activity("running", current_factory(temp_c=27.0, wind_kph=45.0), forecast_factory(rain=[0]))

    assert result.risk_level == "high"
    assert result.tips == [
        "Strong winds expected. Avoid exposed areas.",
        "Plan route to avoid headwinds.",
        "Warm up properly and monitor hydration.",
    ]


def test_picnic_tips_and_missing_forecast(current_factory) -> None:
    result = assess_activity("Outdoor picnic", current_factory(temp_c=3.0, wind_kph=0.0))

    assert result.risk_level == "moderate"
    assert result.tips[-1] == "Pack shade and water; check UV index."
    assert rain_risk_pct(None) == 0


def test_summary_rounds_half_up(current_factory, forecast_factory) -> None:
    result = assess_activity("reading", current_factory(temp_c=22.5, wind_kph=2.5), forecast_factory(rain=[0]))

    assert result.summary == "Risk for reading: low. Temp 23°C, wind 3 kph, rain chance 0%"
