"""Yahoo Finance market-data provider."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping, Optional
from urllib.parse import quote

import requests

from ..config import DEFAULT_YAHOO_BASE_URL, DEFAULT_YAHOO_SEARCH_URL
from ..normalization import (
    guess_currency,
    infer_domicile,
    normalize_country_name,
    normalize_sector_name,
)
from .base import MarketDataProvider, Payload

LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "accept": "application/json,text/plain,*/*",
    "accept-language": "en-US,en;q=0.9",
    "referer": "https://finance.yahoo.com",
    "user-agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36",
}

COOKIE_URL = "https://fc.yahoo.com"
SESSION_TTL = 5 * 60

COMPOSITION_MODULES = "topHoldings,fundProfile,summaryProfile,price,quoteType"
PROFILE_MODULES = "assetProfile,summaryProfile,price,quoteType"

# Yahoo quotes some listings in minor units.
MINOR_UNITS = {"GBp": ("GBP", 100.0), "GBX": ("GBP", 100.0), "ZAc": ("ZAR", 100.0), "ILA": ("ILS", 100.0)}


def _raw(value: Any) -> Optional[float]:
    """Unwrap Yahoo's ``{"raw": 0.25, "fmt": "25%"}`` number objects."""

    if isinstance(value, Mapping):
        value = value.get("raw")
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _weights(entries: Any, normalize) -> dict[str, float]:
    weights: dict[str, float] = {}
    if isinstance(entries, Mapping):
        entries = [entries]
    for entry in entries or []:
        if not isinstance(entry, Mapping):
            continue
        for label, data in entry.items():
            weight = _raw(data)
            if weight is None or weight <= 0:
                continue
            name = normalize(label)
            weights[name] = weights.get(name, 0.0) + weight
    return weights


def _currency_label(label: Any) -> str:
    return str(label).strip().upper()


def _minor_units(price: float, currency: str) -> tuple[float, str]:
    if currency in MINOR_UNITS:
        major, divisor = MINOR_UNITS[currency]
        return price / divisor, major
    return price, currency.upper()


class YahooFinanceProvider(MarketDataProvider):
    """Client for the public Yahoo Finance JSON endpoints."""

    name = "yahoo"

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str = DEFAULT_YAHOO_BASE_URL,
        search_url: str = DEFAULT_YAHOO_SEARCH_URL,
        timeout: float = 10.0,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.base_url = base_url.rstrip("/")
        self.search_url = search_url.rstrip("/")
        self.timeout = timeout
        self._crumb: Optional[str] = None
        self._crumb_expires = 0.0
        self._lock = threading.Lock()

    def close(self) -> None:
        self.session.close()

    def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        LOGGER.debug("GET %s %s", url, dict(params or {}))
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _ensure_crumb(self) -> Optional[str]:
        """Fetch the consent cookie and crumb quoteSummary requires; reused for five minutes."""

        with self._lock:
            if self._crumb and time.monotonic() < self._crumb_expires:
                return self._crumb
            try:
                # The cookie endpoint answers 404 but still sets the session cookie.
                self.session.get(COOKIE_URL, timeout=self.timeout)
                response = self.session.get(f"{self.base_url}/v1/test/getcrumb", timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                LOGGER.warning("Could not obtain Yahoo crumb: %s", exc)
                return None
            crumb = response.text.strip()
            if not crumb or "<" in crumb:
                return None
            self._crumb = crumb
            self._crumb_expires = time.monotonic() + SESSION_TTL
            return crumb

    def _quote_summary(self, symbol: str, modules: str) -> Optional[dict[str, Any]]:
        params: dict[str, Any] = {"modules": modules}
        crumb = self._ensure_crumb()
        if crumb:
            params["crumb"] = crumb
        payload = self._get_json(
            f"{self.base_url}/v10/finance/quoteSummary/{quote(symbol)}", params
        )
        results = (payload.get("quoteSummary") or {}).get("result") or []
        return results[0] if results else None

    def fetch_quote(self, symbol: str) -> Payload:
        payload = self._get_json(
            f"{self.base_url}/v8/finance/chart/{quote(symbol)}",
            {"range": "1d", "interval": "1d"},
        )
        results = (payload.get("chart") or {}).get("result") or []
        if not results:
            return None
        meta = results[0].get("meta") or {}
        price = meta.get("regularMarketPrice")
        currency = meta.get("currency")
        if not isinstance(price, (int, float)) or not currency:
            return None
        previous = meta.get("chartPreviousClose") or meta.get("previousClose")
        change_percent = None
        if isinstance(previous, (int, float)) and previous > 0:
            change_percent = (price - previous) / previous * 100
        price, currency = _minor_units(float(price), currency)
        return {"price": price, "currency": currency, "change_percent": change_percent}

    def search_symbol(self, query: str) -> Payload:
        payload = self._get_json(
            f"{self.search_url}/v1/finance/search",
            {"q": query, "quotesCount": 6, "newsCount": 0},
        )
        quotes = [item for item in payload.get("quotes") or [] if item.get("symbol")]
        if not quotes:
            return None
        wanted = query.upper()
        best = next((item for item in quotes if item["symbol"].upper() == wanted), quotes[0])
        symbol = best["symbol"]
        return {
            "symbol": symbol,
            "name": best.get("longname") or best.get("shortname") or symbol,
            "exchange": best.get("exchDisp") or best.get("exchange"),
            "currency": guess_currency(symbol),
            "quote_type": best.get("quoteType"),
        }

    def fetch_composition(self, symbol: str) -> Payload:
        summary = self._quote_summary(symbol, COMPOSITION_MODULES)
        if not summary:
            return None

        top_holdings = summary.get("topHoldings") or {}
        fund_profile = summary.get("fundProfile") or {}
        price = summary.get("price") or {}

        sectors = _weights(top_holdings.get("sectorWeightings"), normalize_sector_name)
        if not sectors:
            LOGGER.debug("No sector weightings for %s", symbol)
            return None

        countries = _weights(fund_profile.get("countryWeightings"), normalize_country_name)
        domicile = infer_domicile(symbol)
        if not countries and "." not in symbol:
            countries = {"United States": 1.0}

        currencies = _weights(fund_profile.get("currencyWeightings"), _currency_label)
        if not currencies:
            listing = price.get("currency") or guess_currency(symbol)
            currencies = {_minor_units(1.0, listing)[1]: 1.0}
        return {
            "sectors": sectors,
            "countries": countries,
            "currencies": currencies,
            "domicile": domicile,
            "name": price.get("longName") or price.get("shortName"),
            "source": "api",
        }

    def fetch_profile(self, symbol: str) -> Payload:
        summary = self._quote_summary(symbol, PROFILE_MODULES)
        if not summary:
            return None
        profile = summary.get("assetProfile") or summary.get("summaryProfile") or {}
        price = summary.get("price") or {}
        quote_type = summary.get("quoteType") or {}
        currency = price.get("currency") or guess_currency(symbol)
        return {
            "symbol": symbol,
            "name": price.get("longName") or price.get("shortName") or symbol,
            "sector": normalize_sector_name(profile.get("sector")),
            "country": normalize_country_name(profile.get("country")),
            "currency": _minor_units(1.0, currency)[1],
            "quote_type": quote_type.get("quoteType"),
        }


__all__ = ["YahooFinanceProvider"]
