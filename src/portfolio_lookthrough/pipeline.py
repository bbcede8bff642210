"""End-to-end statement parsing: text in, enriched portfolio out."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .allocation import build_allocations
from .config import Settings
from .enrichment import EnrichmentOrchestrator
from .market_data import MarketDataGateway
from .models import AccountOverview, PortfolioResult, Position
from .parsing import decode, harvest_overview, parse_statement_date, scan_rows
from .providers import MarketDataProvider, create_provider

LOGGER = logging.getLogger(__name__)

NO_POSITIONS_MESSAGE = "No valid positions found. Please check the file format."

_DEFAULT_ORCHESTRATOR: Optional[EnrichmentOrchestrator] = None


class NoPositionsFoundError(ValueError):
    """Raised when a non-empty document yields no position under any layout."""

    def __init__(self, message: str = NO_POSITIONS_MESSAGE) -> None:
        super().__init__(message)


def build_orchestrator(
    settings: Settings | None = None,
    provider: MarketDataProvider | None = None,
) -> EnrichmentOrchestrator:
    settings = settings or Settings.load()
    gateway = MarketDataGateway(provider or create_provider(settings), settings)
    return EnrichmentOrchestrator(gateway, settings=settings)


def get_default_orchestrator() -> EnrichmentOrchestrator:
    """Process-wide orchestrator, so caches live as long as the process."""

    global _DEFAULT_ORCHESTRATOR
    if _DEFAULT_ORCHESTRATOR is None:
        _DEFAULT_ORCHESTRATOR = build_orchestrator()
    return _DEFAULT_ORCHESTRATOR


def close_default_orchestrator() -> None:
    global _DEFAULT_ORCHESTRATOR
    if _DEFAULT_ORCHESTRATOR is not None:
        _DEFAULT_ORCHESTRATOR.gateway.close()
        _DEFAULT_ORCHESTRATOR = None


def finalize_positions(positions: list[Position], securities_value: float) -> None:
    for position in positions:
        position.position_percent = (
            position.total_value / securities_value * 100 if securities_value > 0 else 0.0
        )


async def parse_portfolio(
    text: str | None,
    *,
    orchestrator: EnrichmentOrchestrator | None = None,
) -> PortfolioResult:
    """Parse a statement export and return the enriched portfolio.

    Blank input, or input made only of separators, returns an empty result.
    Rows with content that yield no position raise
    :class:`NoPositionsFoundError`. Market-data failures never raise; affected
    positions keep their statement values.
    """

    orchestrator = orchestrator or get_default_orchestrator()
    base_currency = orchestrator.settings.base_currency
    table = decode(text)
    if table.is_empty:
        LOGGER.info("Empty statement; returning an empty portfolio")
        return PortfolioResult.empty(base_currency)
    scan = scan_rows(table, base_currency)
    if not scan.positions:
        LOGGER.warning("No positions found in %d decoded rows", len(table.rows))
        raise NoPositionsFoundError()
    LOGGER.info("Extracted %d positions", len(scan.positions))

    positions = await orchestrator.enrich(scan.positions)

    securities_value = sum(position.total_value for position in positions)
    finalize_positions(positions, securities_value)

    stated = harvest_overview(text)
    cash_balance = stated.cash_balance
    total_value = max(
        securities_value + cash_balance,
        scan.harvested_total,
        stated.total_value,
    )

    return PortfolioResult(
        account_overview=AccountOverview(
            total_value=total_value,
            securities_value=securities_value,
            cash_balance=cash_balance,
        ),
        positions=positions,
        **build_allocations(positions, securities_value),
        base_currency=base_currency,
        statement_date=parse_statement_date(text),
    )


def parse_portfolio_sync(text: str | None, **kwargs) -> PortfolioResult:
    """Blocking wrapper around :func:`parse_portfolio` for scripts and the CLI."""

    return asyncio.run(parse_portfolio(text, **kwargs))


__all__ = [
    "NoPositionsFoundError",
    "build_orchestrator",
    "close_default_orchestrator",
    "get_default_orchestrator",
    "parse_portfolio",
    "parse_portfolio_sync",
]
