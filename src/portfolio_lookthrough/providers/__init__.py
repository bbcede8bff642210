"""Provider factory for market-data backends."""
from __future__ import annotations

import logging

from ..config import Settings
from .base import MarketDataProvider, OfflineProvider
from .static import lookup_static_composition
from .yahoo import YahooFinanceProvider

LOGGER = logging.getLogger(__name__)


def create_provider(settings: Settings) -> MarketDataProvider:
    """Instantiate the provider named by ``settings.provider``."""

    if settings.provider == "offline":
        LOGGER.debug("Selected OfflineProvider")
        return OfflineProvider()
    if settings.provider == "yahoo":
        LOGGER.debug("Selected YahooFinanceProvider (%s)", settings.yahoo_base_url)
        return YahooFinanceProvider(
            base_url=settings.yahoo_base_url,
            search_url=settings.yahoo_search_url,
            timeout=settings.request_timeout,
        )
    raise ValueError(f"Unsupported market-data provider: {settings.provider}")


__all__ = [
    "create_provider",
    "lookup_static_composition",
    "MarketDataProvider",
    "OfflineProvider",
    "YahooFinanceProvider",
]
