"""Tests for single-row position extraction."""

import pytest

from portfolio_lookthrough.models import UNKNOWN, AssetClass
from portfolio_lookthrough.parsing.extractor import (
    SWISS_COLUMNS,
    ColumnMap,
    clean_symbol,
    compute_tax,
    extract_position,
    fx_rate,
    match_category,
    normalize_category,
)

GENERIC = ColumnMap({"symbol": 0, "name": 1, "quantity": 2, "price": 3, "currency": 4, "total_value": 5})


class TestCleanSymbol:
    def test_uppercases_and_strips_junk(self):
        assert clean_symbol(" vwrl.sw* ") == "VWRL.SW"
        assert clean_symbol("brk-b") == "BRK-B"
        assert clean_symbol("") == ""

    def test_underscores_and_accented_letters_are_dropped(self):
        assert clean_symbol("nesn_n") == "NESNN"
        assert clean_symbol("rogé") == "ROG"


class TestCategories:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Actions", "Actions"),
            ("Aktien", "Actions"),
            ("Stocks", "Actions"),
            ("Obligations", "Bonds"),
            ("Produits structurés", "Structured Products"),
            ("Produits structurs", "Structured Products"),
            ("Crypto-monnaies", "Cryptocurrencies"),
            ("Fonds", "Funds"),
            ("ETF (4)", "ETF"),
            ("Liquidités", "Cash"),
        ],
    )
    def test_synonyms(self, label, expected):
        assert normalize_category(label) == expected

    def test_unknown_labels_pass_through(self):
        assert normalize_category("Private Equity") == "Private Equity"
        assert match_category("Private Equity") is None

    def test_embedded_mentions_do_not_match(self):
        assert match_category("Sous-total Actions") is None


class TestFxAndTax:
    def test_fx_rate_to_chf(self):
        assert fx_rate("CHF") == 1.0
        assert fx_rate("USD") == pytest.approx(0.92)
        assert fx_rate("XYZ") == pytest.approx(0.92)

    def test_fx_rate_cross_base(self):
        assert fx_rate("USD", "EUR") == pytest.approx(0.92 / 0.98)
        assert fx_rate("EUR", "EUR") == 1.0

    @pytest.mark.parametrize("domicile", ["US", "IE", "LU"])
    def test_treaty_domiciles_are_optimized(self, domicile):
        assert compute_tax(domicile) == (True, 15.0)

    def test_other_domiciles_pay_full_rate(self):
        assert compute_tax("CH") == (False, 30.0)
        assert compute_tax(UNKNOWN) == (False, 30.0)

    def test_explicit_rate_wins(self):
        assert compute_tax("IE", 0.0) == (True, 0.0)


class TestExtractPosition:
    def test_generic_row(self):
        position = extract_position(
            ["AAPL", "Apple Inc.", "10", "170.50", "USD", "1568.60"], GENERIC, "Actions"
        )
        assert position.symbol == "AAPL"
        assert position.name == "Apple Inc."
        assert position.quantity == 10
        assert position.price == pytest.approx(170.5)
        assert position.current_price == pytest.approx(170.5)
        assert position.total_value == pytest.approx(1568.6)
        assert position.category == "Actions"
        assert position.asset_class is AssetClass.EQUITY
        assert not position.estimated_value

    def test_missing_total_is_estimated_with_static_fx(self):
        position = extract_position(["AAPL", "Apple Inc.", "10", "100", "USD", ""], GENERIC)
        assert position.total_value == pytest.approx(10 * 100 * 0.92)
        assert position.estimated_value

    @pytest.mark.parametrize("quantity", ["-5", "0", "abc", ""])
    def test_non_positive_quantity_is_dropped(self, quantity):
        assert extract_position(["AAPL", "Apple", quantity, "100", "USD", "1000"], GENERIC) is None

    def test_missing_symbol_is_dropped(self):
        assert extract_position(["", "Apple", "10", "100", "USD", "1000"], GENERIC) is None

    def test_price_falls_back_to_unit_cost(self):
        columns = ColumnMap({"symbol": 0, "quantity": 1, "unit_cost": 2, "currency": 3})
        position = extract_position(["VT", "4", "50", "USD"], columns)
        assert position.price == 50
        assert position.unit_cost == 50

    def test_split_decimal_price_is_repaired(self):
        """``0,50`` split by the comma delimiter becomes price 0.50."""
        row = ["CSGN", "Credit Suisse", "500", "0", "50", "CHF", "250", "00"]
        position = extract_position(row, GENERIC)
        assert position.price == pytest.approx(0.5)
        assert position.currency == "CHF"
        assert position.total_value == pytest.approx(250)

    def test_unrecognised_currency_defaults_to_base(self):
        position = extract_position(["NESN", "Nestle", "10", "100", "", "1000"], GENERIC)
        assert position.currency == "CHF"

    def test_swiss_fixed_columns(self):
        row = ["", "NESN", "20", "95.00", "2000.00", "10", "0.5%", "100.00", "CHF", "100", "5.26%", "2000.00", "40%"]
        position = extract_position(row, SWISS_COLUMNS, "Actions")
        assert position.symbol == "NESN"
        assert position.name == "NESN"
        assert position.unit_cost == pytest.approx(95)
        assert position.price == pytest.approx(100)
        assert position.gain_loss == pytest.approx(100)
        assert position.gain_loss_percent == pytest.approx(5.26)
        assert position.daily_change_percent == pytest.approx(0.5)
        assert position.total_value == pytest.approx(2000)

    def test_declared_domicile_sets_tax(self):
        columns = ColumnMap({"symbol": 0, "quantity": 1, "price": 2, "domicile": 3})
        position = extract_position(["VWRL", "10", "100", "Ireland"], columns)
        assert position.domicile == "IE"
        assert position.tax_optimized
        assert position.withholding_tax_rate == 15.0
