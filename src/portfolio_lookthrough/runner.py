"""Command line entry point: parse a statement export and print its allocations."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Iterable, TextIO

from .config import Settings
from .logging_utils import configure_logging
from .models import AllocationItem, PortfolioResult
from .parsing import ExtractionError, extract_text
from .pipeline import NoPositionsFoundError, build_orchestrator, parse_portfolio_sync

LOGGER = logging.getLogger(__name__)

VIEWS = (
    ("Asset allocation", "asset_allocation"),
    ("Currency allocation", "currency_allocation"),
    ("Country allocation", "country_allocation"),
    ("Sector allocation", "sector_allocation"),
    ("Domicile allocation", "domicile_allocation"),
)


def _write_view(out: TextIO, title: str, items: list[AllocationItem], currency: str) -> None:
    out.write(f"\n{title}\n")
    for item in sorted(items, key=lambda entry: entry.value, reverse=True):
        out.write(f"  {item.name:<32} {item.value:>14,.2f} {currency} {item.percentage:>6.2f}%\n")


def render_report(result: PortfolioResult, out: TextIO) -> None:
    overview = result.account_overview
    currency = result.base_currency
    out.write(f"Positions: {len(result.positions)}\n")
    if result.statement_date:
        out.write(f"Statement date: {result.statement_date.isoformat()}\n")
    out.write(f"Total value: {overview.total_value:,.2f} {currency}\n")
    out.write(f"Securities: {overview.securities_value:,.2f} {currency}\n")
    out.write(f"Cash: {overview.cash_balance:,.2f} {currency}\n")

    out.write("\nPositions\n")
    for position in result.positions:
        out.write(
            f"  {position.symbol:<12} {position.name[:28]:<28} {position.quantity:>12,.2f} "
            f"{position.total_value:>14,.2f} {currency} {position.position_percent:>6.2f}%\n"
        )
    for title, attribute in VIEWS:
        _write_view(out, title, getattr(result, attribute), currency)


def run(path: str, settings: Settings, as_json: bool = False, out: TextIO | None = None) -> int:
    """Parse ``path`` and write the report; returns a process exit code."""

    out = out or sys.stdout

    try:
        text = extract_text(path)
    except ExtractionError as exc:
        LOGGER.error("%s", exc)
        return 2

    orchestrator = build_orchestrator(settings)
    try:
        result = parse_portfolio_sync(text, orchestrator=orchestrator)
    except NoPositionsFoundError as exc:
        LOGGER.error("%s", exc)
        return 1
    finally:
        LOGGER.debug("Cache usage: %s", orchestrator.cache_info())
        orchestrator.gateway.close()

    if as_json:
        json.dump(result.to_dict(), out, indent=2, ensure_ascii=False)
        out.write("\n")
    else:
        render_report(result, out)
    return 0


def parse_args(args: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", help="Statement export (CSV, TSV, text or HTML)")
    parser.add_argument("--json", action="store_true", help="Print the portfolio as JSON")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip market-data lookups and report statement values only",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging output",
    )
    return parser.parse_args(args=args)


def main(argv: Iterable[str] | None = None) -> int:
    options = parse_args(argv)
    configure_logging("DEBUG" if options.verbose else None)
    settings = Settings.load()
    if options.offline:
        settings = replace(settings, provider="offline")
    return run(options.path, settings, as_json=options.json)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
