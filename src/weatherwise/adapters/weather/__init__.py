from .base import (
    CapabilityUnsupported,
    InvalidQuery,
    TransportError,
    UpstreamFormatError,
    WeatherAdapterError,
    WeatherProvider,
)
from .open_weather import OpenWeatherAdapter
from .weather_api import WeatherApiAdapter

__all__ = [
    "CapabilityUnsupported",
    "InvalidQuery",
    "OpenWeatherAdapter",
    "TransportError",
    "UpstreamFormatError",
    "WeatherAdapterError",
    "WeatherApiAdapter",
    "WeatherProvider",
]
