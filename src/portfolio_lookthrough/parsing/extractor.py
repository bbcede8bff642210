"""Turn one classified statement row into a :class:`Position`."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..models import UNKNOWN, AssetClass, Position
from ..normalization import country_code
from .numbers import parse_locale_number, parse_percent

LOGGER = logging.getLogger(__name__)

SYMBOL_JUNK = re.compile(r"[^A-Za-z0-9.\-]")
CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
FRAGMENT = re.compile(r"^\d{1,3}$")
ALL_DIGITS = re.compile(r"^\d+$")

# Rough conversion rates into CHF, used only until live quotes arrive.
FX_TO_CHF = {
    "CHF": 1.0,
    "USD": 0.92,
    "EUR": 0.98,
    "GBP": 1.15,
    "JPY": 0.0065,
    "CAD": 0.68,
    "AUD": 0.6,
    "HKD": 0.118,
    "SEK": 0.088,
    "NOK": 0.087,
    "DKK": 0.131,
}

CATEGORY_LABELS = {
    "Actions": AssetClass.EQUITY,
    "ETF": AssetClass.ETF,
    "Funds": AssetClass.FUND,
    "Bonds": AssetClass.BOND,
    "Structured Products": AssetClass.STRUCTURED_PRODUCT,
    "Cryptocurrencies": AssetClass.CRYPTOCURRENCY,
    "Cash": AssetClass.CASH,
}

# Lowercase statement label -> canonical category label.
CATEGORY_SYNONYMS = {
    "actions": "Actions",
    "action": "Actions",
    "equities": "Actions",
    "equity": "Actions",
    "stocks": "Actions",
    "stock": "Actions",
    "shares": "Actions",
    "aktien": "Actions",
    "etf": "ETF",
    "etfs": "ETF",
    "exchange traded funds": "ETF",
    "fonds": "Funds",
    "funds": "Funds",
    "fund": "Funds",
    "anlagefonds": "Funds",
    "obligations": "Bonds",
    "obligationen": "Bonds",
    "bonds": "Bonds",
    "bond": "Bonds",
    "anleihen": "Bonds",
    "produits structurés": "Structured Products",
    "produits structurs": "Structured Products",
    "structured products": "Structured Products",
    "strukturierte produkte": "Structured Products",
    "crypto-monnaies": "Cryptocurrencies",
    "cryptomonnaies": "Cryptocurrencies",
    "cryptocurrencies": "Cryptocurrencies",
    "crypto": "Cryptocurrencies",
    "kryptowährungen": "Cryptocurrencies",
    "liquidités": "Cash",
    "espèces": "Cash",
    "cash": "Cash",
    "liquidität": "Cash",
}

_SYNONYMS_LONGEST_FIRST = sorted(CATEGORY_SYNONYMS, key=len, reverse=True)


def clean_symbol(value: Optional[str]) -> str:
    """Uppercase a symbol cell and drop everything but word chars, dots and dashes."""

    if not value:
        return ""
    return SYMBOL_JUNK.sub("", str(value).strip()).upper()


def match_category(label: Optional[str]) -> Optional[str]:
    """Return the canonical category for a statement label, or ``None``.

    Labels such as ``Actions (12)`` or ``ETF - Ireland`` match on their
    leading word(s); embedded mentions do not.
    """

    if not label:
        return None
    text = str(label).strip().lower().rstrip(":").strip()
    if not text:
        return None
    if text in CATEGORY_SYNONYMS:
        return CATEGORY_SYNONYMS[text]
    for synonym in _SYNONYMS_LONGEST_FIRST:
        if text.startswith(synonym) and not text[len(synonym)].isalnum():
            return CATEGORY_SYNONYMS[synonym]
    return None


def normalize_category(label: Optional[str]) -> str:
    """Canonical label when known, else the stripped label itself."""

    matched = match_category(label)
    if matched:
        return matched
    text = (label or "").strip()
    return text or UNKNOWN


def asset_class_for(category: str) -> AssetClass:
    return CATEGORY_LABELS.get(category, AssetClass.UNKNOWN)


def fx_to_chf(currency: Optional[str]) -> float:
    return FX_TO_CHF.get((currency or "").upper(), FX_TO_CHF["USD"])


def fx_rate(currency: Optional[str], base_currency: str = "CHF") -> float:
    """Static conversion factor from ``currency`` into ``base_currency``."""

    if (currency or "").upper() == base_currency.upper():
        return 1.0
    return fx_to_chf(currency) / fx_to_chf(base_currency)


def compute_tax(domicile: Optional[str], explicit_rate: Optional[float] = None) -> tuple[bool, float]:
    """Return ``(tax_optimized, withholding_rate)`` for a domicile code."""

    optimized = (domicile or "").upper() in {"US", "IE", "LU"}
    if explicit_rate is not None:
        return optimized, float(explicit_rate)
    return optimized, 15.0 if optimized else 30.0


@dataclass(slots=True)
class ColumnMap:
    """Field name -> column index for one statement layout."""

    columns: dict[str, int] = field(default_factory=dict)

    def index(self, name: str) -> int:
        return self.columns.get(name, -1)

    def __contains__(self, name: str) -> bool:
        return self.index(name) >= 0


# Swiss private-bank exports put the category in column 0 and the rest at
# fixed offsets.
SWISS_COLUMNS = ColumnMap(
    {
        "symbol": 1,
        "quantity": 2,
        "unit_cost": 3,
        "trading_total": 4,
        "daily_change": 5,
        "daily_change_percent": 6,
        "price": 7,
        "currency": 8,
        "gain_loss": 9,
        "gain_loss_percent": 10,
        "total_value": 11,
        "position_percent": 12,
    }
)


class _RowReader:
    """Reads mapped cells, honouring a column shift after a split decimal."""

    def __init__(self, row: Sequence[str], columns: ColumnMap) -> None:
        self.row = row
        self.columns = columns
        self.shift_after = -1

    def raw(self, name: str) -> str:
        index = self.columns.index(name)
        if index < 0:
            return ""
        if 0 <= self.shift_after < index:
            index += 1
        if index >= len(self.row):
            return ""
        return str(self.row[index] or "").strip()

    def repair_split_decimal(self) -> Optional[str]:
        """Rejoin ``0,50`` that a comma delimiter split into ``0`` and ``50``."""

        price_index = self.columns.index("price")
        currency_index = self.columns.index("currency")
        if price_index < 0 or currency_index != price_index + 1:
            return None
        if currency_index + 1 >= len(self.row):
            return None
        price = self.raw("price")
        fragment = str(self.row[currency_index]).strip()
        following = str(self.row[currency_index + 1]).strip().upper()
        if ALL_DIGITS.match(price) and FRAGMENT.match(fragment) and CURRENCY_CODE.match(following):
            self.shift_after = price_index
            return f"{price}.{fragment}"
        return None


def extract_position(
    row: Sequence[str],
    columns: ColumnMap,
    current_category: str = UNKNOWN,
    base_currency: str = "CHF",
) -> Optional[Position]:
    """Build a provisional position from ``row`` or return ``None``.

    Rows without a symbol, or with a non-positive quantity or price, are
    dropped. The statement's base-currency total is used when present;
    otherwise ``quantity * price`` is converted with the static FX table and
    the position is flagged as an estimate.
    """

    reader = _RowReader(row, columns)
    symbol = clean_symbol(reader.raw("symbol"))
    if not symbol:
        return None

    repaired_price = reader.repair_split_decimal()
    price_text = repaired_price if repaired_price is not None else reader.raw("price")

    quantity = parse_locale_number(reader.raw("quantity"))
    unit_cost = parse_locale_number(reader.raw("unit_cost"))
    price = parse_locale_number(price_text) or unit_cost
    if quantity <= 0 or price <= 0:
        LOGGER.debug("Dropping row for %s: quantity=%s price=%s", symbol, quantity, price)
        return None

    currency = reader.raw("currency").upper()
    if not CURRENCY_CODE.match(currency):
        currency = base_currency

    category_cell = reader.raw("category")
    category = normalize_category(category_cell) if category_cell else current_category or UNKNOWN
    asset_class = asset_class_for(category)

    estimated = False
    total_value = parse_locale_number(reader.raw("total_value"))
    if total_value <= 0:
        trading_total = parse_locale_number(reader.raw("trading_total"))
        if trading_total > 0:
            total_value = trading_total * fx_rate(currency, base_currency)
        else:
            total_value = quantity * price * fx_rate(currency, base_currency)
        estimated = True

    domicile = country_code(reader.raw("domicile"))
    tax_optimized, withholding = compute_tax(domicile)

    gain_loss = parse_locale_number(reader.raw("gain_loss"))
    gain_loss_percent = parse_percent(reader.raw("gain_loss_percent"))
    if not gain_loss and unit_cost > 0:
        cost_basis = quantity * unit_cost * fx_rate(currency, base_currency)
        gain_loss = total_value - cost_basis
        if not gain_loss_percent and cost_basis > 0:
            gain_loss_percent = gain_loss / cost_basis * 100

    return Position(
        symbol=symbol,
        original_symbol=symbol,
        name=reader.raw("name") or symbol,
        quantity=quantity,
        unit_cost=unit_cost or price,
        price=price,
        currency=currency,
        category=category,
        asset_class=asset_class,
        total_value=total_value,
        estimated_value=estimated,
        sector=reader.raw("sector") or UNKNOWN,
        geography=reader.raw("geography") or UNKNOWN,
        domicile=domicile,
        withholding_tax_rate=withholding,
        tax_optimized=tax_optimized,
        gain_loss=gain_loss,
        gain_loss_percent=gain_loss_percent,
        position_percent=parse_percent(reader.raw("position_percent")),
        daily_change_percent=parse_percent(reader.raw("daily_change_percent")),
    )


__all__ = [
    "ColumnMap",
    "SWISS_COLUMNS",
    "FX_TO_CHF",
    "CATEGORY_SYNONYMS",
    "clean_symbol",
    "match_category",
    "normalize_category",
    "asset_class_for",
    "fx_rate",
    "compute_tax",
    "extract_position",
]
