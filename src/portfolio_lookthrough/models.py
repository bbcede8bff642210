"""Domain models for parsed and enriched portfolios."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional


UNKNOWN = "Unknown"


class AssetClass(str, Enum):
    """Closed asset-class taxonomy every statement category maps into."""

    EQUITY = "Equity"
    ETF = "ETF"
    FUND = "Fund"
    BOND = "Bond"
    STRUCTURED_PRODUCT = "StructuredProduct"
    CRYPTOCURRENCY = "Cryptocurrency"
    CASH = "Cash"
    UNKNOWN = "Unknown"

    @property
    def is_pooled(self) -> bool:
        return self in (AssetClass.ETF, AssetClass.FUND)


def _clean_weights(raw: Mapping[str, Any] | None) -> dict[str, float]:
    weights: dict[str, float] = {}
    for label, value in (raw or {}).items():
        try:
            weight = float(value)
        except (TypeError, ValueError):
            continue
        if not label or math.isnan(weight) or weight <= 0:
            continue
        key = str(label).strip()
        weights[key] = weights.get(key, 0.0) + weight
    # Percent-denominated payloads (weights summing to ~100) become fractions.
    if sum(weights.values()) > 1.5:
        weights = {label: weight / 100.0 for label, weight in weights.items()}
    return weights


@dataclass(slots=True)
class Composition:
    """Look-through weights of a pooled vehicle (or a single security)."""

    sectors: dict[str, float] = field(default_factory=dict)
    countries: dict[str, float] = field(default_factory=dict)
    currencies: dict[str, float] = field(default_factory=dict)
    domicile: Optional[str] = None
    withholding_tax_rate: Optional[float] = None
    name: Optional[str] = None
    source: str = "api"

    @classmethod
    def from_weights(
        cls,
        sectors: Mapping[str, Any] | None = None,
        countries: Mapping[str, Any] | None = None,
        currencies: Mapping[str, Any] | None = None,
        **extra: Any,
    ) -> "Composition":
        """Build a composition, scaling percent weights down to fractions."""

        return cls(
            sectors=_clean_weights(sectors),
            countries=_clean_weights(countries),
            currencies=_clean_weights(currencies),
            **extra,
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> Optional["Composition"]:
        """Validate a provider payload; one non-empty distribution is required."""

        if isinstance(payload, Composition):
            return None if payload.is_empty else payload
        if not isinstance(payload, Mapping):
            return None
        rate = payload.get("withholding_tax_rate")
        try:
            withholding = float(rate) if rate is not None else None
        except (TypeError, ValueError):
            withholding = None
        composition = cls.from_weights(
            sectors=payload.get("sectors"),
            countries=payload.get("countries"),
            currencies=payload.get("currencies"),
            domicile=_text(payload, "domicile"),
            withholding_tax_rate=withholding,
            name=_text(payload, "name"),
            source=_text(payload, "source") or "api",
        )
        return None if composition.is_empty else composition

    @property
    def is_empty(self) -> bool:
        return not (self.sectors or self.countries or self.currencies)

    def copy(self) -> "Composition":
        return Composition(
            sectors=dict(self.sectors),
            countries=dict(self.countries),
            currencies=dict(self.currencies),
            domicile=self.domicile,
            withholding_tax_rate=self.withholding_tax_rate,
            name=self.name,
            source=self.source,
        )

    @staticmethod
    def dominant(weights: Mapping[str, float]) -> Optional[str]:
        """Return the label carrying the largest weight, if any."""

        if not weights:
            return None
        return max(weights.items(), key=lambda item: item[1])[0]


@dataclass(slots=True)
class Position:
    """A single holding as read from a statement and later enriched."""

    symbol: str
    original_symbol: str
    name: str
    quantity: float
    unit_cost: float
    price: float
    currency: str
    category: str
    asset_class: AssetClass
    total_value: float
    current_price: Optional[float] = None
    estimated_value: bool = False
    sector: str = UNKNOWN
    geography: str = UNKNOWN
    domicile: str = UNKNOWN
    exchange: str = UNKNOWN
    withholding_tax_rate: float = 30.0
    tax_optimized: bool = False
    gain_loss: float = 0.0
    gain_loss_percent: float = 0.0
    position_percent: float = 0.0
    daily_change_percent: float = 0.0
    composition: Optional[Composition] = None

    def __post_init__(self) -> None:
        if self.current_price is None:
            self.current_price = self.price


@dataclass(slots=True)
class AllocationItem:
    """One bucket of an allocation view."""

    name: str
    value: float
    percentage: float
    tag: Optional[str] = None


@dataclass(slots=True)
class AccountOverview:
    total_value: float = 0.0
    securities_value: float = 0.0
    cash_balance: float = 0.0


@dataclass(slots=True)
class PortfolioResult:
    """Normalized portfolio with its five allocation views."""

    account_overview: AccountOverview = field(default_factory=AccountOverview)
    positions: list[Position] = field(default_factory=list)
    asset_allocation: list[AllocationItem] = field(default_factory=list)
    currency_allocation: list[AllocationItem] = field(default_factory=list)
    country_allocation: list[AllocationItem] = field(default_factory=list)
    sector_allocation: list[AllocationItem] = field(default_factory=list)
    domicile_allocation: list[AllocationItem] = field(default_factory=list)
    base_currency: str = "CHF"
    statement_date: Optional[date] = None

    @classmethod
    def empty(cls, base_currency: str = "CHF") -> "PortfolioResult":
        return cls(base_currency=base_currency)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation."""

        payload = asdict(self)
        for position in payload["positions"]:
            position["asset_class"] = AssetClass(position["asset_class"]).value
        if self.statement_date is not None:
            payload["statement_date"] = self.statement_date.isoformat()
        return payload


def _text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _positive_float(payload: Mapping[str, Any], key: str) -> Optional[float]:
    try:
        value = float(payload.get(key))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or value <= 0:
        return None
    return value


@dataclass(frozen=True, slots=True)
class Quote:
    price: float
    currency: str
    change_percent: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> Optional["Quote"]:
        """Validate a provider payload; missing price or currency yields ``None``."""

        if not isinstance(payload, Mapping):
            return None
        price = _positive_float(payload, "price")
        currency = _text(payload, "currency")
        if price is None or currency is None:
            return None
        change = payload.get("change_percent")
        try:
            change_percent = float(change) if change is not None else None
        except (TypeError, ValueError):
            change_percent = None
        return cls(price=price, currency=currency.upper(), change_percent=change_percent)


@dataclass(frozen=True, slots=True)
class SearchHit:
    symbol: str
    name: str
    exchange: str
    currency: str
    quote_type: str = "EQUITY"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> Optional["SearchHit"]:
        if not isinstance(payload, Mapping):
            return None
        symbol = _text(payload, "symbol")
        if symbol is None:
            return None
        return cls(
            symbol=symbol.upper(),
            name=_text(payload, "name") or symbol,
            exchange=_text(payload, "exchange") or UNKNOWN,
            currency=(_text(payload, "currency") or "USD").upper(),
            quote_type=(_text(payload, "quote_type") or "EQUITY").upper(),
        )


@dataclass(frozen=True, slots=True)
class SecurityProfile:
    symbol: str
    name: str
    sector: str
    country: str
    currency: str
    quote_type: str = "EQUITY"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> Optional["SecurityProfile"]:
        if not isinstance(payload, Mapping):
            return None
        symbol = _text(payload, "symbol")
        if symbol is None:
            return None
        return cls(
            symbol=symbol.upper(),
            name=_text(payload, "name") or symbol,
            sector=_text(payload, "sector") or UNKNOWN,
            country=_text(payload, "country") or UNKNOWN,
            currency=(_text(payload, "currency") or "USD").upper(),
            quote_type=(_text(payload, "quote_type") or "EQUITY").upper(),
        )

    def to_composition(self) -> Composition:
        """Treat the security as a one-asset fund with 100% weight on itself."""

        return Composition(
            sectors={self.sector: 1.0},
            countries={self.country: 1.0},
            currencies={self.currency: 1.0},
            domicile=self.country,
            name=self.name,
            source="profile",
        )


@dataclass(frozen=True, slots=True)
class Resolution:
    original_symbol: str
    resolved_symbol: str
    exchange: str
    type: str
    currency: str
    name: str


__all__ = [
    "UNKNOWN",
    "AssetClass",
    "Composition",
    "Position",
    "AllocationItem",
    "AccountOverview",
    "PortfolioResult",
    "Quote",
    "SearchHit",
    "SecurityProfile",
    "Resolution",
]
