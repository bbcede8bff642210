"""Cached, failure-tolerant access to a market-data provider."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional, TypeVar

from .cache import Clock, TTLCache
from .config import Settings
from .models import Composition, Quote, SearchHit, SecurityProfile
from .providers.base import MarketDataProvider

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")


class MarketDataGateway:
    """Wraps a provider with per-kind TTL caches.

    Provider calls are blocking, so they run in a worker thread. Any
    exception, and any payload missing required fields, becomes ``None``.
    Only successful lookups are cached.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        settings: Settings | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        settings = settings or Settings()
        self.provider = provider
        self.quotes: TTLCache[Quote] = TTLCache(settings.quote_ttl, clock=clock)
        self.compositions: TTLCache[Composition] = TTLCache(settings.composition_ttl, clock=clock)
        self.profiles: TTLCache[SecurityProfile] = TTLCache(settings.composition_ttl, clock=clock)
        self.searches: TTLCache[SearchHit] = TTLCache(settings.search_ttl, clock=clock)

    async def _call(
        self,
        kind: str,
        method: Callable[[str], Any],
        key: str,
        validate: Callable[[Any], Optional[R]],
        cache: TTLCache[R],
    ) -> Optional[R]:
        cached = cache.get(key)
        if cached is not None:
            return cached
        try:
            payload = await asyncio.to_thread(method, key)
        except Exception as exc:  # noqa: BLE001 - any provider failure means "no data"
            LOGGER.warning("%s lookup failed for %s: %s", kind, key, exc)
            return None
        record = validate(payload)
        if record is None:
            LOGGER.debug("No usable %s data for %s", kind, key)
            return None
        cache.set(key, record)
        return record

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        return await self._call("quote", self.provider.fetch_quote, symbol, _as(Quote), self.quotes)

    async def get_composition(self, symbol: str) -> Optional[Composition]:
        """Return a private copy, so callers may mutate it freely."""

        composition = await self._call(
            "composition",
            self.provider.fetch_composition,
            symbol,
            Composition.from_payload,
            self.compositions,
        )
        return composition.copy() if composition is not None else None

    async def get_profile(self, symbol: str) -> Optional[SecurityProfile]:
        return await self._call(
            "profile", self.provider.fetch_profile, symbol, _as(SecurityProfile), self.profiles
        )

    async def search(self, query: str) -> Optional[SearchHit]:
        return await self._call(
            "search", self.provider.search_symbol, query, _as(SearchHit), self.searches
        )

    def caches(self) -> dict[str, TTLCache]:
        return {
            "quotes": self.quotes,
            "compositions": self.compositions,
            "profiles": self.profiles,
            "searches": self.searches,
        }

    def clear(self) -> None:
        for cache in self.caches().values():
            cache.clear()

    def close(self) -> None:
        self.provider.close()


def _as(record_type):
    """Validator accepting either a typed record or a raw payload mapping."""

    def validate(payload: Any):
        if isinstance(payload, record_type):
            return payload
        return record_type.from_payload(payload)

    return validate


__all__ = ["MarketDataGateway"]
