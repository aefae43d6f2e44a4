from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Generic, TypeVar

from ..domain.models import Forecast, NormalizedCurrent, NormalizedHistorical

V = TypeVar("V")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    key: str
    value: V
    inserted_at: datetime
    ttl_seconds: int

    def is_stale(self, now: datetime | None = None) -> bool:
        reference = now or utc_now()
        return (reference - self.inserted_at).total_seconds() > self.ttl_seconds


class TTLCache(Generic[V]):
    """Bounded in-memory store with per-store TTL and LRU eviction.

    Expired entries are treated as absent and dropped when read. Inserting
    past ``max_entries`` evicts the least recently used entry.
    """

    def __init__(self, *, max_entries: int, ttl_seconds: int, clock: Clock = utc_now) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_stale(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=self._clock(),
                ttl_seconds=self.ttl_seconds,
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)


@dataclass(slots=True)
class WeatherCaches:
    current: TTLCache[NormalizedCurrent]
    forecast: TTLCache[Forecast]
    historical: TTLCache[NormalizedHistorical]
