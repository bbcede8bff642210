"""Base classes for market-data providers."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

Payload = Optional[Mapping[str, Any]]


class MarketDataProvider(ABC):
    """Abstract source of quotes, fund compositions and symbol search.

    Methods are synchronous and may block on the network; callers run them
    in worker threads. Returning ``None`` means "no data". Raising is also
    allowed, the gateway treats both the same way.
    """

    name = "abstract"

    @abstractmethod
    def fetch_quote(self, symbol: str) -> Payload:
        """Return ``{"price", "currency", "change_percent"}`` for ``symbol``."""

    @abstractmethod
    def fetch_composition(self, symbol: str) -> Payload:
        """Return ``{"sectors", "countries", "currencies", "domicile", ...}`` weights."""

    @abstractmethod
    def search_symbol(self, query: str) -> Payload:
        """Return the best ``{"symbol", "name", "exchange", "currency", "quote_type"}`` hit."""

    def fetch_profile(self, symbol: str) -> Payload:
        """Return ``{"symbol", "name", "sector", "country", "currency"}`` for a single security."""

        return None

    def close(self) -> None:
        """Release network resources."""


class OfflineProvider(MarketDataProvider):
    """Provider that never has data; positions keep their statement values."""

    name = "offline"

    def fetch_quote(self, symbol: str) -> Payload:
        return None

    def fetch_composition(self, symbol: str) -> Payload:
        return None

    def search_symbol(self, query: str) -> Payload:
        return None


__all__ = ["MarketDataProvider", "OfflineProvider", "Payload"]
