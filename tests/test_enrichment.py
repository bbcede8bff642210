"""Tests for live enrichment of statement positions."""

import asyncio
import threading
import time

import pytest

from portfolio_lookthrough.config import Settings
from portfolio_lookthrough.enrichment import EnrichmentData, EnrichmentOrchestrator, apply_enrichment
from portfolio_lookthrough.market_data import MarketDataGateway
from portfolio_lookthrough.models import UNKNOWN, Composition, Quote, Resolution

from conftest import FakeProvider, make_position

VWRL_SEARCH = {
    "symbol": "VWRL.SW",
    "name": "Vanguard FTSE All-World UCITS ETF",
    "exchange": "EBS",
    "currency": "CHF",
    "quote_type": "ETF",
}


class SlowProvider(FakeProvider):
    def fetch_profile(self, symbol):
        time.sleep(0.5)
        return super().fetch_profile(symbol)


class TrackingProvider(FakeProvider):
    """Records how many profile lookups overlap and the order they run in."""

    def __init__(self, **tables):
        super().__init__(**tables)
        self.lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0
        self.events = []

    def fetch_profile(self, symbol):
        with self.lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            self.events.append(("start", symbol))
        time.sleep(0.1)
        with self.lock:
            self.in_flight -= 1
            self.events.append(("end", symbol))
        return super().fetch_profile(symbol)


class TestPooledVehicles:
    def test_composition_from_provider(self, orchestrator, provider):
        provider.searches["VWRL.SW"] = VWRL_SEARCH
        provider.compositions["VWRL.SW"] = {"sectors": {"Technology": 60, "Healthcare": 40}}
        provider.quotes["VWRL.SW"] = {"price": 110.0, "currency": "CHF", "change_percent": -0.4}
        position = make_position("VWRL", category="ETF", currency="CHF", total_value=1500.0)

        asyncio.run(orchestrator.enrich([position]))

        assert position.symbol == "VWRL.SW"
        assert position.original_symbol == "VWRL"
        assert position.exchange == "EBS"
        assert position.name == "Vanguard FTSE All-World UCITS ETF"
        assert position.composition.sectors == {"Technology": 0.6, "Healthcare": 0.4}
        assert position.sector == "Technology"
        assert position.current_price == 110.0
        assert position.daily_change_percent == -0.4
        assert position.total_value == 1500.0

    def test_static_table_when_provider_has_nothing(self, orchestrator, provider):
        position = make_position("VWRL", category="ETF", currency="CHF")

        asyncio.run(orchestrator.enrich([position]))

        assert position.composition.source == "static"
        assert position.composition.sectors["Financial Services"] == pytest.approx(0.2)
        assert position.geography == "United States"
        assert position.domicile == "IE"
        assert position.tax_optimized
        assert position.withholding_tax_rate == 15.0

    def test_unknown_fund_keeps_statement_values(self, orchestrator, provider):
        position = make_position("ZZZF", category="Funds", currency="CHF")

        asyncio.run(orchestrator.enrich([position]))

        assert position.composition is None
        assert position.sector == UNKNOWN
        assert position.total_value == 1000.0


class TestSingleSecurities:
    def test_profile_becomes_one_asset_composition(self, orchestrator, provider):
        provider.profiles["AAPL"] = {
            "symbol": "AAPL",
            "name": "Apple Inc.",
            "sector": "Technology",
            "country": "United States",
            "currency": "USD",
        }
        position = make_position("AAPL")

        asyncio.run(orchestrator.enrich([position]))

        assert position.exchange == "US"
        assert position.composition.sectors == {"Technology": 1.0}
        assert position.composition.countries == {"United States": 1.0}
        assert position.geography == "United States"
        assert position.domicile == "US"
        assert position.tax_optimized
        assert provider.calls_of("composition") == []

    def test_declared_attributes_win(self, orchestrator, provider):
        provider.profiles["XOM"] = {"symbol": "XOM", "sector": "Technology", "country": "United States"}
        position = make_position("XOM", sector="Energy")

        asyncio.run(orchestrator.enrich([position]))

        assert position.sector == "Energy"
        assert position.geography == "United States"

    def test_crypto_is_quoted_against_its_currency(self, orchestrator, provider):
        provider.quotes["BTC-USD"] = {"price": 60000.0, "currency": "USD"}
        position = make_position("BTC", category="Cryptocurrencies", quantity=0.5, price=50000.0)

        asyncio.run(orchestrator.enrich([position]))

        assert position.current_price == 60000.0
        assert provider.calls_of("quote") == ["BTC-USD"]
        assert provider.calls_of("profile") == []

    def test_crypto_skips_symbol_resolution(self, orchestrator, provider):
        provider.quotes["BTC-CHF"] = {"price": 55000.0, "currency": "CHF"}
        position = make_position("BTC", category="Cryptocurrencies", currency="CHF", quantity=0.1)

        asyncio.run(orchestrator.enrich([position]))

        assert provider.calls == [("quote", "BTC-CHF")]
        assert position.symbol == "BTC"
        assert position.current_price == 55000.0

    def test_cash_is_not_looked_up(self, orchestrator, provider):
        position = make_position("CHF", category="Cash", currency="CHF")
        asyncio.run(orchestrator.enrich([position]))
        assert provider.calls == []
        assert position.current_price == position.price


class TestEstimatedValues:
    def test_live_price_replaces_estimate(self, orchestrator, provider):
        provider.quotes["AAPL"] = {"price": 120.0, "currency": "USD"}
        position = make_position(
            "AAPL", unit_cost=100.0, total_value=920.0, estimated_value=True
        )

        asyncio.run(orchestrator.enrich([position]))

        assert position.total_value == pytest.approx(10 * 120 * 0.92)
        assert position.gain_loss == pytest.approx(10 * 20 * 0.92)
        assert position.gain_loss_percent == pytest.approx(20)

    def test_stated_total_is_not_touched(self, orchestrator, provider):
        provider.quotes["AAPL"] = {"price": 120.0, "currency": "USD"}
        position = make_position("AAPL", total_value=1568.6)
        asyncio.run(orchestrator.enrich([position]))
        assert position.total_value == 1568.6
        assert position.current_price == 120.0


class TestFailureIsolation:
    def test_timeout_keeps_statement_values(self, clock):
        settings = Settings(enrichment_timeout=0.05)
        provider = SlowProvider(profiles={"AAPL": {"symbol": "AAPL", "sector": "Technology"}})
        orchestrator = EnrichmentOrchestrator(MarketDataGateway(provider, settings, clock=clock), settings=settings)
        position = make_position("AAPL")

        result = asyncio.run(orchestrator.enrich([position]))

        assert result == [position]
        assert position.sector == UNKNOWN
        assert position.composition is None

    def test_unexpected_error_keeps_position(self, orchestrator, monkeypatch):
        async def explode(position):
            raise RuntimeError("boom")

        monkeypatch.setattr(orchestrator, "fetch", explode)
        position = make_position("AAPL")

        asyncio.run(orchestrator.enrich([position]))

        assert position.symbol == "AAPL"
        assert position.exchange == UNKNOWN

    def test_one_failure_does_not_affect_the_batch(self, orchestrator, provider):
        provider.errors["MSFT"] = ConnectionError("reset")
        provider.quotes["AAPL"] = {"price": 120.0, "currency": "USD"}
        positions = [make_position("MSFT"), make_position("AAPL")]

        asyncio.run(orchestrator.enrich(positions))

        assert positions[0].current_price == 100.0
        assert positions[1].current_price == 120.0


class TestBatching:
    def test_order_is_preserved_across_batches(self, clock):
        settings = Settings(batch_size=2)
        symbols = ["AAPL", "MSFT", "NVDA", "AMZN", "META"]
        provider = FakeProvider(quotes={s: {"price": 1.0 + i, "currency": "USD"} for i, s in enumerate(symbols)})
        orchestrator = EnrichmentOrchestrator(MarketDataGateway(provider, settings, clock=clock), settings=settings)

        result = asyncio.run(orchestrator.enrich([make_position(s) for s in symbols]))

        assert [p.symbol for p in result] == symbols
        assert [p.current_price for p in result] == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_batches_bound_concurrency_and_run_in_sequence(self, clock):
        settings = Settings(batch_size=3)
        symbols = ["AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOG"]
        provider = TrackingProvider()
        orchestrator = EnrichmentOrchestrator(MarketDataGateway(provider, settings, clock=clock), settings=settings)

        asyncio.run(orchestrator.enrich([make_position(s) for s in symbols]))

        assert 1 < provider.peak <= 3
        first, second = set(symbols[:3]), set(symbols[3:])
        last_first_end = max(i for i, (kind, s) in enumerate(provider.events) if kind == "end" and s in first)
        first_second_start = min(i for i, (kind, s) in enumerate(provider.events) if kind == "start" and s in second)
        assert last_first_end < first_second_start


class TestCaches:
    def test_clear_caches_empties_resolutions_and_market_data(self, orchestrator, provider):
        provider.quotes["AAPL"] = {"price": 190.0, "currency": "USD"}
        asyncio.run(orchestrator.enrich([make_position("AAPL")]))

        info = orchestrator.cache_info()
        assert info["resolutions"]["entries"] == 1
        assert info["quotes"]["entries"] == 1

        orchestrator.clear_caches()

        assert orchestrator.resolver.cached("AAPL", "USD") is None
        assert all(entry["entries"] == 0 for entry in orchestrator.cache_info().values())


class TestApplyEnrichment:
    def test_composition_labels_are_normalized(self):
        position = make_position("IWDA", category="ETF")
        data = EnrichmentData(
            composition=Composition.from_weights(
                sectors={"Information Technology": 0.5, "technology": 0.1, "Health Care": 0.4},
                countries={"USA": 0.7, "Japan": 0.3},
            )
        )

        apply_enrichment(position, data)

        assert position.composition.sectors == pytest.approx({"Technology": 0.6, "Healthcare": 0.4})
        assert position.composition.countries == {"United States": 0.7, "Japan": 0.3}

    def test_explicit_withholding_rate_wins(self):
        position = make_position("CSPX", category="ETF", domicile="IE")
        composition = Composition.from_weights(sectors={"Technology": 1}, withholding_tax_rate=0.0)

        apply_enrichment(position, EnrichmentData(composition=composition))

        assert position.tax_optimized
        assert position.withholding_tax_rate == 0.0

    def test_resolution_name_fills_placeholder_name(self):
        position = make_position("NESN", currency="CHF")
        resolution = Resolution("NESN", "NESN.SW", "EBS", "EQUITY", "CHF", "Nestle SA")
        apply_enrichment(position, EnrichmentData(resolution=resolution, quote=Quote(101.0, "CHF")))
        assert position.name == "Nestle SA"
        assert position.symbol == "NESN.SW"
        assert position.current_price == 101.0
