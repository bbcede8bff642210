"""Shared test doubles and fixtures."""
from __future__ import annotations

from typing import Any, Mapping, Optional

import pytest

from portfolio_lookthrough.config import Settings
from portfolio_lookthrough.enrichment import EnrichmentOrchestrator
from portfolio_lookthrough.market_data import MarketDataGateway
from portfolio_lookthrough.models import Position
from portfolio_lookthrough.parsing.extractor import asset_class_for
from portfolio_lookthrough.providers.base import MarketDataProvider


class FakeProvider(MarketDataProvider):
    """Provider backed by dictionaries; records every call it receives."""

    name = "fake"

    def __init__(
        self,
        quotes: Mapping[str, Any] | None = None,
        compositions: Mapping[str, Any] | None = None,
        searches: Mapping[str, Any] | None = None,
        profiles: Mapping[str, Any] | None = None,
        errors: Mapping[str, Exception] | None = None,
    ) -> None:
        self.quotes = dict(quotes or {})
        self.compositions = dict(compositions or {})
        self.searches = dict(searches or {})
        self.profiles = dict(profiles or {})
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str]] = []

    def _lookup(self, kind: str, table: Mapping[str, Any], key: str) -> Optional[Any]:
        self.calls.append((kind, key))
        if key in self.errors:
            raise self.errors[key]
        return table.get(key)

    def fetch_quote(self, symbol: str):
        return self._lookup("quote", self.quotes, symbol)

    def fetch_composition(self, symbol: str):
        return self._lookup("composition", self.compositions, symbol)

    def search_symbol(self, query: str):
        return self._lookup("search", self.searches, query)

    def fetch_profile(self, symbol: str):
        return self._lookup("profile", self.profiles, symbol)

    def calls_of(self, kind: str) -> list[str]:
        return [key for call_kind, key in self.calls if call_kind == kind]


def make_position(symbol: str = "AAPL", **overrides: Any) -> Position:
    """A plain statement position; keyword arguments override any field."""

    category = overrides.pop("category", "Actions")
    values = dict(
        symbol=symbol,
        original_symbol=symbol,
        name=symbol,
        quantity=10.0,
        unit_cost=0.0,
        price=100.0,
        currency="USD",
        category=category,
        asset_class=asset_class_for(category),
        total_value=1000.0,
    )
    values.update(overrides)
    return Position(**values)


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def gateway(provider: FakeProvider, settings: Settings, clock: ManualClock) -> MarketDataGateway:
    return MarketDataGateway(provider, settings, clock=clock)


@pytest.fixture
def orchestrator(gateway: MarketDataGateway, settings: Settings) -> EnrichmentOrchestrator:
    return EnrichmentOrchestrator(gateway, settings=settings)
