from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .domain.models import Forecast, NormalizedCurrent
from .units import round_half_up

RiskLevel = Literal["low", "moderate", "high"]


class InsightResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    activity: str
    risk_level: RiskLevel = Field(serialization_alias="riskLevel")
    summary: str
    tips: list[str] = Field(default_factory=list)


def rain_risk_pct(forecast: Forecast | None) -> int:
    """Highest rain chance over the first forecast day."""
    if forecast is None or not forecast.days:
        return 0
    return max(forecast.days[0].chance_of_rain_pct or 0, 0)


def assess_activity(
    activity: str,
    current: NormalizedCurrent,
    forecast: Forecast | None = None,
) -> InsightResult:
    rain_chance = rain_risk_pct(forecast)
    wind = current.wind_kph or 0
    temp_c = current.temperature_c
    condition_text = (current.condition.text or "").lower()
    risk: RiskLevel = "low"
    tips: list[str] = []

    if rain_chance >= 70 or "rain" in condition_text or "storm" in condition_text:
        risk = "high"
        tips.append("Carry waterproof gear or reschedule if possible.")
    elif rain_chance >= 40:
        risk = "moderate"
        tips.append("Light rain possible. Check radar before heading out.")

    if wind >= 40:
        risk = "high"
        tips.append("Strong winds expected. Avoid exposed areas.")
    elif wind >= 25 and risk != "high":
        risk = "moderate"
        tips.append("Gusty conditions. Secure loose items and be cautious.")

    if temp_c >= 32:
        risk = "high"
        tips.append("High heat risk. Hydrate, use sunscreen, and limit exposure.")
    elif temp_c >= 26 and risk != "high":
        risk = "moderate"
        tips.append("Warm conditions. Hydrate well and pace yourself.")
    elif temp_c <= -5:
        risk = "high"
        tips.append("Extreme cold. Layer up and limit time outside.")
    elif temp_c <= 5 and risk != "high":
        risk = "moderate"
        tips.append("Cold conditions. Wear warm layers and protect extremities.")

    lowered = activity.lower()
    if "running" in lowered or "cycling" in lowered:
        if wind >= 30:
            tips.append("Plan route to avoid headwinds.")
        tips.append("Warm up properly and monitor hydration.")
    elif "hiking" in lowered:
        tips.append("Check trail conditions and bring appropriate footwear.")
    elif "picnic" in lowered or "outdoor" in lowered:
        if rain_chance >= 40:
            tips.append("Have a backup indoor location.")
        tips.append("Pack shade and water; check UV index.")

    summary = (
        f"Risk for {activity}: {risk}. Temp {round_half_up(temp_c)}°C, "
        f"wind {round_half_up(wind)} kph, rain chance {rain_chance}%"
    )
    return InsightResult(activity=activity, risk_level=risk, summary=summary, tips=tips)
