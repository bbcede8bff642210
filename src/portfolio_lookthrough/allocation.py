"""Allocation views over finalized positions.

Currency, country and sector views look through compositions: a position
carrying weights spreads its value over them, others count whole under
their own declared attribute. Percentages are of ``total_value`` and may
drift slightly from 100 when composition weights do not sum to exactly 1.
"""
from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

from .models import UNKNOWN, AllocationItem, Composition, Position
from .normalization import domicile_label


class _Buckets:
    """Insertion-ordered accumulator of ``name -> value``."""

    def __init__(self) -> None:
        self.values: dict[str, float] = {}
        self.tags: dict[str, Optional[str]] = {}

    def add(self, name: str, value: float, tag: Optional[str] = None) -> None:
        name = name or UNKNOWN
        if name not in self.values:
            self.values[name] = 0.0
            self.tags[name] = tag
        self.values[name] += value

    def items(self, total_value: float) -> list[AllocationItem]:
        return [
            AllocationItem(
                name=name,
                value=value,
                percentage=value / total_value * 100 if total_value > 0 else 0.0,
                tag=self.tags[name],
            )
            for name, value in self.values.items()
        ]


def _look_through(
    positions: Iterable[Position],
    total_value: float,
    weights_of: Callable[[Composition], dict[str, float]],
    declared: Callable[[Position], str],
) -> list[AllocationItem]:
    buckets = _Buckets()
    for position in positions:
        weights = weights_of(position.composition) if position.composition else {}
        if weights:
            for name, weight in weights.items():
                buckets.add(name, position.total_value * weight, name)
        else:
            name = declared(position)
            buckets.add(name, position.total_value, name)
    return buckets.items(total_value)


def asset_allocation(positions: Sequence[Position], total_value: float) -> list[AllocationItem]:
    buckets = _Buckets()
    for position in positions:
        buckets.add(position.category, position.total_value, position.asset_class.value)
    return buckets.items(total_value)


def currency_allocation(positions: Sequence[Position], total_value: float) -> list[AllocationItem]:
    return _look_through(positions, total_value, lambda c: c.currencies, lambda p: p.currency)


def country_allocation(positions: Sequence[Position], total_value: float) -> list[AllocationItem]:
    return _look_through(positions, total_value, lambda c: c.countries, lambda p: p.geography)


def sector_allocation(positions: Sequence[Position], total_value: float) -> list[AllocationItem]:
    return _look_through(positions, total_value, lambda c: c.sectors, lambda p: p.sector)


def domicile_allocation(positions: Sequence[Position], total_value: float) -> list[AllocationItem]:
    buckets = _Buckets()
    for position in positions:
        buckets.add(domicile_label(position.domicile), position.total_value, position.domicile)
    return buckets.items(total_value)


def build_allocations(positions: Sequence[Position], total_value: float) -> dict[str, list[AllocationItem]]:
    """Return all five views keyed by their ``PortfolioResult`` field name."""

    return {
        "asset_allocation": asset_allocation(positions, total_value),
        "currency_allocation": currency_allocation(positions, total_value),
        "country_allocation": country_allocation(positions, total_value),
        "sector_allocation": sector_allocation(positions, total_value),
        "domicile_allocation": domicile_allocation(positions, total_value),
    }


__all__ = [
    "build_allocations",
    "asset_allocation",
    "currency_allocation",
    "country_allocation",
    "sector_allocation",
    "domicile_allocation",
]
