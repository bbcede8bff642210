"""Tests for label normalization and the static fund table."""

import pytest

from portfolio_lookthrough.models import UNKNOWN
from portfolio_lookthrough.normalization import (
    country_code,
    domicile_label,
    guess_currency,
    infer_domicile,
    normalize_country_name,
    normalize_sector_name,
)
from portfolio_lookthrough.providers.static import lookup_static_composition


class TestLabels:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Information Technology", "Technology"),
            ("financial_services", "Financial Services"),
            ("Consumer Cyclical", "Consumer Discretionary"),
            ("Space Mining", "Space Mining"),
            ("", UNKNOWN),
            (None, UNKNOWN),
        ],
    )
    def test_sector_names(self, raw, expected):
        assert normalize_sector_name(raw) == expected

    def test_country_names_and_codes(self):
        assert normalize_country_name("USA") == "United States"
        assert normalize_country_name("Schweiz") == "Switzerland"
        assert country_code("Irlande") == "IE"
        assert country_code("lu") == "LU"
        assert country_code("Atlantis") == UNKNOWN

    def test_domicile_labels(self):
        assert domicile_label("IE") == "Ireland (IE)"
        assert domicile_label("jp") == "JP (JP)"
        assert domicile_label(UNKNOWN) == UNKNOWN

    def test_listing_heuristics(self):
        assert guess_currency("NESN.SW") == "CHF"
        assert guess_currency("VWRL.L") == "GBP"
        assert guess_currency("AAPL") == "USD"
        assert infer_domicile("VWRL.SW") == "IE"
        assert infer_domicile("SPY") == "US"
        assert infer_domicile("7203.T") == UNKNOWN


class TestStaticCompositions:
    def test_lookup_ignores_exchange_suffix(self):
        composition = lookup_static_composition("vwrl.sw")
        assert composition.source == "static"
        assert composition.domicile == "IE"
        assert composition.sectors["Healthcare"] == pytest.approx(0.15)

    def test_each_lookup_is_a_fresh_copy(self):
        first = lookup_static_composition("IWDA")
        first.sectors.clear()
        assert lookup_static_composition("SWDA.L").sectors

    def test_unknown_fund(self):
        assert lookup_static_composition("ZZZZ") is None
