"""Known compositions for widely held funds, used when the API has none."""
from __future__ import annotations

import logging
from typing import Any, Optional

from ..models import Composition
from ..normalization import normalize_country_name, normalize_sector_name

LOGGER = logging.getLogger(__name__)

_ALL_WORLD = {
    "name": "Vanguard FTSE All-World UCITS ETF",
    "domicile": "IE",
    "sectors": {
        "Technology": 0.4,
        "Financials": 0.2,
        "Healthcare": 0.15,
        "Consumer Discretionary": 0.12,
        "Other": 0.13,
    },
    "countries": {"United States": 0.6, "Switzerland": 0.15, "Japan": 0.1, "Other": 0.15},
    "currencies": {"USD": 0.65, "EUR": 0.15, "JPY": 0.07, "Other": 0.13},
}

_SP500_UCITS = {
    "name": "Vanguard S&P 500 UCITS ETF",
    "domicile": "IE",
    "sectors": {"Information Technology": 0.28, "Financials": 0.13, "Health Care": 0.12, "Other": 0.47},
    "countries": {"United States": 1.0},
    "currencies": {"USD": 1.0},
}

_MSCI_WORLD = {
    "name": "iShares Core MSCI World UCITS ETF",
    "domicile": "IE",
    "sectors": {
        "Technology": 0.24,
        "Financials": 0.15,
        "Healthcare": 0.12,
        "Industrials": 0.11,
        "Consumer Discretionary": 0.1,
        "Other": 0.28,
    },
    "countries": {"United States": 0.7, "Japan": 0.06, "United Kingdom": 0.04, "France": 0.03, "Other": 0.17},
    "currencies": {"USD": 0.7, "EUR": 0.1, "JPY": 0.06, "GBP": 0.04, "Other": 0.1},
}

_EMERGING = {
    "name": "iShares Core MSCI EM IMI UCITS ETF",
    "domicile": "IE",
    "sectors": {"Technology": 0.23, "Financials": 0.22, "Consumer Discretionary": 0.13, "Communication Services": 0.09, "Other": 0.33},
    "countries": {"China": 0.25, "India": 0.19, "Taiwan": 0.18, "South Korea": 0.11, "Brazil": 0.05, "Other": 0.22},
    "currencies": {"HKD": 0.22, "INR": 0.19, "TWD": 0.18, "KRW": 0.11, "Other": 0.3},
}

# Keyed by the symbol without its exchange suffix.
KNOWN_COMPOSITIONS: dict[str, dict[str, Any]] = {
    "VWRL": _ALL_WORLD,
    "VWCE": _ALL_WORLD,
    "VUSA": _SP500_UCITS,
    "VOOV": _SP500_UCITS,
    "CSPX": {**_SP500_UCITS, "name": "iShares Core S&P 500 UCITS ETF"},
    "IWDA": _MSCI_WORLD,
    "SWDA": _MSCI_WORLD,
    "EIMI": _EMERGING,
    "IS3N": _EMERGING,
    "SPICHA": {
        "name": "UBS Core SPI ETF CHF dis",
        "domicile": "CH",
        "sectors": {
            "Financials": 0.25,
            "Healthcare": 0.2,
            "Consumer Staples": 0.15,
            "Industrials": 0.12,
            "Technology": 0.1,
            "Other": 0.18,
        },
        "countries": {"Switzerland": 1.0},
        "currencies": {"CHF": 1.0},
    },
    "SMH": {
        "name": "VanEck Semiconductor ETF",
        "domicile": "US",
        "sectors": {"Information Technology": 1.0},
        "countries": {"United States": 0.8, "Taiwan": 0.15, "Netherlands": 0.05},
        "currencies": {"USD": 0.8, "TWD": 0.15, "EUR": 0.05},
    },
    "VTI": {
        "name": "Vanguard Total Stock Market ETF",
        "domicile": "US",
        "sectors": {
            "Technology": 0.3,
            "Financials": 0.13,
            "Healthcare": 0.12,
            "Consumer Discretionary": 0.11,
            "Industrials": 0.1,
            "Other": 0.24,
        },
        "countries": {"United States": 1.0},
        "currencies": {"USD": 1.0},
    },
}


def base_symbol(symbol: str) -> str:
    return symbol.strip().upper().split(".", 1)[0]


def lookup_static_composition(symbol: str) -> Optional[Composition]:
    """Return a fresh composition for a known fund, whatever its listing suffix."""

    entry = KNOWN_COMPOSITIONS.get(base_symbol(symbol))
    if entry is None:
        return None
    LOGGER.debug("Using static composition for %s", symbol)
    return Composition.from_weights(
        sectors={normalize_sector_name(k): v for k, v in entry["sectors"].items()},
        countries={normalize_country_name(k): v for k, v in entry["countries"].items()},
        currencies=entry["currencies"],
        domicile=entry["domicile"],
        name=entry["name"],
        source="static",
    )


__all__ = ["KNOWN_COMPOSITIONS", "lookup_static_composition", "base_symbol"]
