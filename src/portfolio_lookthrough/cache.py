"""Time-to-live caches for resolutions and market data."""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]

DEFAULT_MAX_ENTRIES = 2048


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float


def is_expired(entry: CacheEntry[Any], now: float, ttl: float) -> bool:
    """An entry is fresh for exactly ``ttl`` seconds after insertion."""

    return now - entry.inserted_at >= ttl


class TTLCache(Generic[T]):
    """Bounded mapping whose entries expire ``ttl`` seconds after insertion.

    The clock is injectable so tests can move time without sleeping. Once
    ``max_entries`` is reached the oldest insertion is evicted.
    """

    def __init__(
        self,
        ttl: float,
        *,
        clock: Clock = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self.ttl = ttl
        self.clock = clock
        self.max_entries = max_entries
        self._entries: OrderedDict[Hashable, CacheEntry[T]] = OrderedDict()

    def lookup(self, key: Hashable) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if is_expired(entry, self.clock(), self.ttl):
            del self._entries[key]
            return None
        return entry

    def get(self, key: Hashable, default: Optional[T] = None) -> Optional[T]:
        entry = self.lookup(key)
        return default if entry is None else entry.value

    def set(self, key: Hashable, value: T) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, inserted_at=self.clock())
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        return self.lookup(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["CacheEntry", "Clock", "TTLCache", "is_expired"]
