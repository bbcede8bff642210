"""Live enrichment of provisional statement positions.

Each position is resolved to a provider symbol, given a look-through
composition and a live quote. Pooled vehicles (ETF, fund) use the
provider's fund composition, then the static table of known funds. Single
securities use their profile as a one-asset composition. Positions run in
sequential batches; within a batch they run concurrently, each bounded by a
timeout. Anything that fails leaves the position's statement values alone.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import Settings
from .market_data import MarketDataGateway
from .models import UNKNOWN, AssetClass, Composition, Position, Quote, Resolution
from .normalization import country_code, normalize_country_name, normalize_sector_name
from .parsing.extractor import compute_tax, fx_rate
from .providers.static import lookup_static_composition
from .resolver import SymbolResolver

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrichmentData:
    """Everything fetched for one position, applied in a single step."""

    resolution: Optional[Resolution] = None
    composition: Optional[Composition] = None
    quote: Optional[Quote] = None


class EnrichmentOrchestrator:
    def __init__(
        self,
        gateway: MarketDataGateway,
        resolver: SymbolResolver | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.gateway = gateway
        self.resolver = resolver or SymbolResolver(gateway, ttl=self.settings.resolution_ttl)

    def cache_info(self) -> dict[str, dict[str, float]]:
        """Entry counts and lifetimes of every lookup cache."""

        info = {"resolutions": self.resolver.cache_info()}
        for name, cache in self.gateway.caches().items():
            info[name] = {"entries": len(cache), "ttl": cache.ttl}
        return info

    def clear_caches(self) -> None:
        self.resolver.clear()
        self.gateway.clear()
        LOGGER.info("Cleared resolution and market-data caches")

    async def enrich(self, positions: Iterable[Position]) -> list[Position]:
        """Enrich ``positions`` in place, in batches, and return them in order."""

        positions = list(positions)
        size = max(1, self.settings.batch_size)
        for start in range(0, len(positions), size):
            batch = positions[start : start + size]
            LOGGER.debug("Enriching batch %d-%d of %d", start + 1, start + len(batch), len(positions))
            await asyncio.gather(*(self.enrich_position(position) for position in batch))
        return positions

    async def enrich_position(self, position: Position) -> Position:
        try:
            data = await asyncio.wait_for(
                self.fetch(position), timeout=self.settings.enrichment_timeout
            )
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Enrichment of %s timed out after %.0fs; keeping statement values",
                position.symbol,
                self.settings.enrichment_timeout,
            )
            return position
        except Exception:
            LOGGER.exception("Enrichment of %s failed; keeping statement values", position.symbol)
            return position
        apply_enrichment(position, data, self.settings.base_currency)
        return position

    async def fetch(self, position: Position) -> EnrichmentData:
        data = EnrichmentData()
        if position.asset_class is AssetClass.CASH:
            return data

        if position.asset_class is AssetClass.CRYPTOCURRENCY:
            symbol = position.original_symbol.strip().upper()
            if "-" not in symbol:
                symbol = f"{symbol}-{position.currency or 'USD'}"
            data.quote = await self.gateway.get_quote(symbol)
            return data

        data.resolution = await self.resolver.resolve(position.original_symbol, position.currency)
        symbol = data.resolution.resolved_symbol

        if position.asset_class.is_pooled:
            data.composition = await self.gateway.get_composition(symbol)
            if data.composition is None:
                data.composition = lookup_static_composition(symbol)
        else:
            profile = await self.gateway.get_profile(symbol)
            if profile is not None:
                data.composition = profile.to_composition()

        data.quote = await self.gateway.get_quote(symbol)
        return data


def apply_enrichment(position: Position, data: EnrichmentData, base_currency: str = "CHF") -> None:
    """Fold fetched data into ``position``.

    Declared statement attributes win over composition-derived ones; a
    composition only fills what the statement left as ``Unknown``.
    """

    resolution = data.resolution
    if resolution is not None:
        position.symbol = resolution.resolved_symbol
        position.exchange = resolution.exchange
        if position.name == position.original_symbol and resolution.name != resolution.original_symbol:
            position.name = resolution.name

    composition = data.composition
    if composition is not None:
        composition.sectors = _renamed(composition.sectors, normalize_sector_name)
        composition.countries = _renamed(composition.countries, normalize_country_name)
        position.composition = composition
        if composition.name and position.name == position.original_symbol:
            position.name = composition.name
        if position.sector == UNKNOWN:
            position.sector = Composition.dominant(composition.sectors) or UNKNOWN
        if position.geography == UNKNOWN:
            position.geography = Composition.dominant(composition.countries) or UNKNOWN

    if position.domicile == UNKNOWN and composition is not None:
        position.domicile = country_code(composition.domicile)
    explicit_rate = composition.withholding_tax_rate if composition is not None else None
    position.tax_optimized, position.withholding_tax_rate = compute_tax(position.domicile, explicit_rate)

    quote = data.quote
    if quote is not None:
        position.current_price = quote.price
        if quote.change_percent is not None:
            position.daily_change_percent = quote.change_percent
        if position.estimated_value:
            position.total_value = position.quantity * quote.price * fx_rate(quote.currency, base_currency)
            cost_basis = position.quantity * position.unit_cost * fx_rate(position.currency, base_currency)
            if cost_basis > 0:
                position.gain_loss = position.total_value - cost_basis
                position.gain_loss_percent = position.gain_loss / cost_basis * 100


def _renamed(weights: dict[str, float], normalize) -> dict[str, float]:
    renamed: dict[str, float] = {}
    for label, weight in weights.items():
        name = normalize(label)
        renamed[name] = renamed.get(name, 0.0) + weight
    return renamed


__all__ = ["EnrichmentOrchestrator", "EnrichmentData", "apply_enrichment"]
