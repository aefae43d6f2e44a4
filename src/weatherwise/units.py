from __future__ import annotations

import math

KM_PER_MILE = 1.609344
KPH_PER_MS = 3.6


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32) * 5 / 9


def kph_to_mph(value: float) -> float:
    return value / KM_PER_MILE


def mph_to_kph(value: float) -> float:
    return value * KM_PER_MILE


def ms_to_kph(value: float) -> float:
    return value * KPH_PER_MS


def round_half_up(value: float) -> int:
    """Round .5 away from the even neighbour, unlike the builtin ``round``."""
    return math.floor(value + 0.5)
