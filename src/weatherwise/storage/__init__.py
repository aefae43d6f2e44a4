from .cache import CacheEntry, TTLCache, WeatherCaches

__all__ = [
    "CacheEntry",
    "TTLCache",
    "WeatherCaches",
]
