"""Label normalization shared by the parser, providers and aggregator."""
from __future__ import annotations

from typing import Optional

from .models import UNKNOWN

SECTOR_NAMES = {
    "information technology": "Technology",
    "it": "Technology",
    "technology": "Technology",
    "financial services": "Financial Services",
    "financial_services": "Financial Services",
    "financials": "Financial Services",
    "finance": "Financial Services",
    "healthcare": "Healthcare",
    "health": "Healthcare",
    "health care": "Healthcare",
    "consumer discretionary": "Consumer Discretionary",
    "consumer_cyclical": "Consumer Discretionary",
    "consumer cyclical": "Consumer Discretionary",
    "consumer staples": "Consumer Staples",
    "consumer_defensive": "Consumer Staples",
    "consumer defensive": "Consumer Staples",
    "industrials": "Industrials",
    "communication services": "Communication Services",
    "communication_services": "Communication Services",
    "telecommunications": "Telecommunications",
    "utilities": "Utilities",
    "energy": "Energy",
    "materials": "Materials",
    "basic_materials": "Materials",
    "basic materials": "Materials",
    "real estate": "Real Estate",
    "realestate": "Real Estate",
}

# Canonical country name -> ISO 3166 alpha-2 code.
COUNTRY_CODES = {
    "United States": "US",
    "Ireland": "IE",
    "Luxembourg": "LU",
    "Switzerland": "CH",
    "Germany": "DE",
    "France": "FR",
    "Netherlands": "NL",
    "Italy": "IT",
    "Spain": "ES",
    "Japan": "JP",
    "United Kingdom": "GB",
    "Canada": "CA",
    "Australia": "AU",
    "China": "CN",
    "Hong Kong": "HK",
    "Taiwan": "TW",
    "South Korea": "KR",
    "India": "IN",
    "Brazil": "BR",
    "Sweden": "SE",
    "Denmark": "DK",
    "Norway": "NO",
}

COUNTRY_ALIASES = {
    "usa": "United States",
    "us": "United States",
    "u.s.": "United States",
    "united states of america": "United States",
    "etats-unis": "United States",
    "états-unis": "United States",
    "uk": "United Kingdom",
    "gb": "United Kingdom",
    "great britain": "United Kingdom",
    "suisse": "Switzerland",
    "schweiz": "Switzerland",
    "irlande": "Ireland",
    "allemagne": "Germany",
    "deutschland": "Germany",
    "korea": "South Korea",
}
COUNTRY_ALIASES.update({code.lower(): name for name, code in COUNTRY_CODES.items()})
COUNTRY_ALIASES.update({name.lower(): name for name in COUNTRY_CODES})

DOMICILE_LABELS = {
    "IE": "Ireland (IE)",
    "US": "United States (US)",
    "CH": "Switzerland (CH)",
    "LU": "Luxembourg (LU)",
    "DE": "Germany (DE)",
    "FR": "France (FR)",
}

SUFFIX_CURRENCIES = {
    "SW": "CHF",
    "VX": "CHF",
    "L": "GBP",
    "DE": "EUR",
    "F": "EUR",
    "AS": "EUR",
    "PA": "EUR",
    "MI": "EUR",
    "MC": "EUR",
    "BR": "EUR",
    "T": "JPY",
    "TO": "CAD",
    "AX": "AUD",
    "HK": "HKD",
    "ST": "SEK",
    "OL": "NOK",
    "CO": "DKK",
}

# Listings on these exchanges are overwhelmingly Irish-domiciled UCITS ETFs.
IRISH_ETF_SUFFIXES = {"L", "SW", "AS", "DE", "MI", "PA", "VX"}


def normalize_sector_name(sector: Optional[str]) -> str:
    if not sector:
        return UNKNOWN
    text = str(sector).strip()
    return SECTOR_NAMES.get(text.lower(), text) or UNKNOWN


def normalize_country_name(country: Optional[str]) -> str:
    if not country:
        return UNKNOWN
    text = str(country).strip()
    return COUNTRY_ALIASES.get(text.lower(), text) or UNKNOWN


def country_code(country: Optional[str]) -> str:
    """Map a country name or code to its ISO-2 code, ``Unknown`` otherwise."""

    name = normalize_country_name(country)
    return COUNTRY_CODES.get(name, UNKNOWN)


def domicile_label(code: Optional[str]) -> str:
    if not code or code == UNKNOWN:
        return UNKNOWN
    code = code.upper()
    return DOMICILE_LABELS.get(code, f"{code} ({code})")


def symbol_suffix(symbol: str) -> Optional[str]:
    if "." not in symbol:
        return None
    return symbol.rsplit(".", 1)[1].upper() or None


def guess_currency(symbol: str) -> str:
    """Guess a listing currency from the exchange suffix; plain symbols are USD."""

    suffix = symbol_suffix(symbol)
    if suffix is None:
        return "USD"
    return SUFFIX_CURRENCIES.get(suffix, "USD")


def infer_domicile(symbol: str) -> str:
    suffix = symbol_suffix(symbol)
    if suffix is None:
        return "US"
    return "IE" if suffix in IRISH_ETF_SUFFIXES else UNKNOWN


__all__ = [
    "normalize_sector_name",
    "normalize_country_name",
    "country_code",
    "domicile_label",
    "guess_currency",
    "infer_domicile",
    "symbol_suffix",
    "DOMICILE_LABELS",
]
