"""Map statement tickers to exchange-qualified provider symbols."""
from __future__ import annotations

import logging
import re
import time
from typing import Optional

from .cache import Clock, TTLCache
from .market_data import MarketDataGateway
from .models import UNKNOWN, Resolution

LOGGER = logging.getLogger(__name__)

DEFAULT_RESOLUTION_TTL = 24 * 60 * 60

CURRENCY_MARKETS = {"CHF": ".SW", "GBP": ".L", "EUR": ".DE"}
UCITS_SUFFIXES = (".SW", ".L", ".DE", ".AS", ".PA", ".MI", ".VX")

# Ticker shapes used by the big UCITS issuers (Vanguard, iShares, Xtrackers,
# SPDR, Credit Suisse/UBS).
FUND_PATTERNS = (
    re.compile(r"^V[A-Z]{3}$"),
    re.compile(r"^I[A-Z]{3}$"),
    re.compile(r"^IS[0-9][A-Z]$"),
    re.compile(r"^X[A-Z]{3}$"),
    re.compile(r"^SP[A-Z]{2,4}$"),
    re.compile(r"^CS[A-Z0-9]{2,3}$"),
    re.compile(r"^EUN[A-Z0-9]$"),
)
ISIN = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")


def looks_like_fund(symbol: str) -> bool:
    return any(pattern.match(symbol) for pattern in FUND_PATTERNS)


def candidate_symbols(symbol: str, currency: str) -> list[str]:
    """Ordered exchange-suffixed variants worth searching for ``symbol``."""

    suffixes: list[str] = []
    market = CURRENCY_MARKETS.get((currency or "").upper())
    if market:
        suffixes.append(market)
    if looks_like_fund(symbol):
        suffixes.extend(UCITS_SUFFIXES)
    seen: set[str] = set()
    variants = []
    for suffix in suffixes:
        if suffix not in seen:
            seen.add(suffix)
            variants.append(f"{symbol}{suffix}")
    return variants


def resolves_to_itself(symbol: str, currency: str) -> bool:
    if "." in symbol or ISIN.match(symbol):
        return True
    return not candidate_symbols(symbol, currency)


class SymbolResolver:
    """Resolve ``(raw symbol, trading currency)`` pairs with a 24h memo."""

    def __init__(
        self,
        gateway: MarketDataGateway,
        *,
        ttl: float = DEFAULT_RESOLUTION_TTL,
        clock: Clock = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.cache: TTLCache[Resolution] = TTLCache(ttl, clock=clock)

    @staticmethod
    def _key(raw_symbol: str, currency: Optional[str]) -> tuple[str, str]:
        return raw_symbol.strip().upper(), (currency or "").upper()

    def cached(self, raw_symbol: str, currency: Optional[str]) -> Optional[Resolution]:
        """Return the memoized resolution without touching the network."""

        return self.cache.get(self._key(raw_symbol, currency))

    def clear(self) -> None:
        self.cache.clear()

    def cache_info(self) -> dict[str, float]:
        return {"entries": len(self.cache), "ttl": self.cache.ttl}

    async def resolve(self, raw_symbol: str, currency: str) -> Resolution:
        cached = self.cached(raw_symbol, currency)
        if cached is not None:
            return cached
        key = self._key(raw_symbol, currency)
        symbol, currency = key

        try:
            resolution = await self._resolve(symbol, currency)
        except Exception as exc:  # noqa: BLE001 - resolution never fails the position
            LOGGER.warning("Symbol resolution failed for %s: %s", symbol, exc)
            resolution = self._fallback(symbol, currency)
        self.cache.set(key, resolution)
        return resolution

    async def _resolve(self, symbol: str, currency: str) -> Resolution:
        if resolves_to_itself(symbol, currency):
            exchange = UNKNOWN if "." in symbol or ISIN.match(symbol) else "US"
            return Resolution(
                original_symbol=symbol,
                resolved_symbol=symbol,
                exchange=exchange,
                type="EQUITY",
                currency=currency or "USD",
                name=symbol,
            )

        for variant in candidate_symbols(symbol, currency):
            hit = await self.gateway.search(variant)
            if hit is not None and hit.symbol == variant:
                LOGGER.info("Resolved %s (%s) to %s on %s", symbol, currency, variant, hit.exchange)
                return Resolution(
                    original_symbol=symbol,
                    resolved_symbol=hit.symbol,
                    exchange=hit.exchange,
                    type=hit.quote_type,
                    currency=hit.currency,
                    name=hit.name,
                )
        LOGGER.info("No listing found for %s (%s); keeping the statement symbol", symbol, currency)
        return self._fallback(symbol, currency)

    @staticmethod
    def _fallback(symbol: str, currency: Optional[str]) -> Resolution:
        return Resolution(
            original_symbol=symbol,
            resolved_symbol=symbol,
            exchange=UNKNOWN,
            type=UNKNOWN,
            currency=currency or "USD",
            name=symbol,
        )


__all__ = ["SymbolResolver", "candidate_symbols", "looks_like_fund", "resolves_to_itself"]
