"""Statement layout detection and row classification.

Three layouts are recognised, tried in order:

* the Swiss private-bank export, with category rows in column 0 and
  positions at fixed column offsets;
* a generic table with a header row somewhere in the first 20 rows, mapped
  to fields by synonym matching;
* headerless rows read positionally.

Rows are classified by :func:`classify_row`, a pure step that folds a
:class:`FoldState` (current category and harvested statement total) over
the table. :func:`scan_rows` drives the fold and the extractor.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence

from ..models import UNKNOWN, Position
from .decoder import MODE_TEXT, DecodedTable, Row
from .extractor import (
    SWISS_COLUMNS,
    ColumnMap,
    clean_symbol,
    extract_position,
    match_category,
)
from .numbers import looks_numeric, parse_locale_number

LOGGER = logging.getLogger(__name__)

LAYOUT_SWISS = "swiss"
LAYOUT_GENERIC = "generic"
LAYOUT_HEADERLESS = "headerless"

HEADER_SEARCH_ROWS = 20
HEADER_MIN_HITS = 2

SWISS_CATEGORY_TOKENS = (
    "actions",
    "etf",
    "fonds",
    "obligations",
    "produits structurés",
    "produits structurs",
    "crypto",
    "aktien",
    "anleihen",
)

SWISS_HEADER_COMBINATIONS = (
    ("symbole", "quantité", "valeur totale"),
    ("symbol", "menge", "gesamtwert"),
    ("symbol", "quantity", "total value chf"),
)

HEADER_INDICATORS = (
    "symbole", "symbol", "ticker", "isin", "quantité", "quantity", "qty", "nombre",
    "prix", "price", "cours", "valeur", "devise", "currency", "dev", "ccy",
    "montant", "total", "chf", "usd", "eur", "gbp", "jpy", "cad",
    "libellé", "libelle", "description", "nom", "name",
)

# Field order matters: each column is claimed by the first field matching it.
COLUMN_SYNONYMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("symbol", ("symbole", "symbol", "ticker", "isin", "code", "instrument", "titre", "security")),
    ("quantity", ("quantité", "quantity", "qty", "nombre", "qte", "units", "shares", "parts", "menge", "anzahl")),
    ("name", (
        "nom", "name", "description", "libellé", "libelle", "designation",
        "intitulé", "intitule", "security name", "instrument name", "bezeichnung",
    )),
    ("unit_cost", (
        "prix unitaire", "unit price", "coût unitaire", "cout unitaire", "cost",
        "prix d'achat", "purchase price", "avg cost", "einstandspreis",
    )),
    ("total_value", (
        "valeur totale chf", "total value chf", "total chf", "montant chf", "valeur chf",
        "market value chf", "value chf", "gesamtwert chf", "valeur totale",
        "market value", "total value", "gesamtwert", "montant", "total",
    )),
    ("price", (
        "prix", "price", "cours", "kurs", "current price", "market price",
        "last price", "quote", "cotation", "valeur",
    )),
    ("currency", ("devise", "currency", "dev", "ccy", "monnaie", "währung")),
    ("category", ("catégorie", "category", "classe", "asset class", "instrument type", "type")),
    ("geography", ("geography", "country", "region", "pays", "région", "géographie")),
    ("sector", ("sector", "industry", "secteur", "industrie")),
    ("domicile", ("domicile", "domicile country", "fund domicile", "incorporation")),
    ("gain_loss_percent", (
        "g&p %", "gain loss %", "gain/loss %", "plus-value %", "résultat %", "resultat %",
        "p&l %", "pnl %", "gain %", "performance", "rendement",
    )),
    ("gain_loss", (
        "g&p chf", "gain loss chf", "gain/loss", "plus-value", "résultat", "resultat",
        "p&l", "pnl", "gain", "loss", "profit", "unrealized",
    )),
    ("position_percent", (
        "positions %", "position %", "poids", "weight", "allocation",
        "% portfolio", "portfolio %",
    )),
    ("daily_change_percent", (
        "quot. %", "daily %", "var. quot.", "variation", "change", "daily change", "1d %", "jour %",
    )),
)

TOTAL_KEYWORDS = re.compile(
    r"\b(?:sous-total|subtotal|total)|\b(?:somme|summe|sum|gesamt|gesamttotal)\b",
    re.IGNORECASE,
)
GRAND_TOTAL_MARKERS = ("total général", "grand total", "gesamttotal", "total portefeuille", "total portfolio")
CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


class RowKind(str, Enum):
    BLANK = "blank"
    CATEGORY = "category"
    SUBTOTAL = "subtotal"
    GRAND_TOTAL = "grand_total"
    HEADER = "header"
    POSITION = "position"


@dataclass(frozen=True, slots=True)
class FoldState:
    """What the classifier carries from one row to the next."""

    category: str = UNKNOWN
    harvested_total: float = 0.0


@dataclass(slots=True)
class Schema:
    layout: str
    columns: ColumnMap = field(default_factory=ColumnMap)
    header_index: int = -1
    header: Row = field(default_factory=list)


@dataclass(slots=True)
class ScanResult:
    positions: list[Position] = field(default_factory=list)
    harvested_total: float = 0.0
    schema: Optional[Schema] = None


def _lower(row: Sequence[str]) -> str:
    return " ".join(str(cell) for cell in row).lower()


def _first_cell(row: Sequence[str]) -> str:
    return str(row[0]).strip() if row else ""


def _label_cell(row: Sequence[str]) -> str:
    for cell in row[:2]:
        text = str(cell).strip()
        if text:
            return text
    return ""


def is_category_row(row: Sequence[str]) -> bool:
    """A known category label in column 0 with nothing beside it."""

    if not row or match_category(_first_cell(row)) is None:
        return False
    return not any(str(cell).strip() for cell in row[1:3])


def largest_number(row: Sequence[str]) -> float:
    largest = 0.0
    for cell in row:
        value = parse_locale_number(str(cell))
        if value > largest:
            largest = value
    return largest


def header_hits(row: Sequence[str]) -> int:
    text = _lower(row)
    return sum(1 for indicator in HEADER_INDICATORS if indicator in text)


def is_header_row(row: Sequence[str]) -> bool:
    """At least two header keywords and mostly text cells."""

    if len(row) < 2 or header_hits(row) < HEADER_MIN_HITS:
        return False
    filled = [str(cell).strip() for cell in row if str(cell).strip()]
    numeric = sum(1 for cell in filled if looks_numeric(cell))
    return numeric * 2 < len(filled)


def find_header(rows: Sequence[Row]) -> int:
    for index, row in enumerate(rows[:HEADER_SEARCH_ROWS]):
        if is_header_row(row):
            return index
    return -1


def _header_matches(header: str, term: str) -> bool:
    """Match ``term`` against a header cell in either direction.

    Abbreviated headers (``Curr``, ``Sym``) match single-word synonyms only.
    """

    if not header:
        return False
    if term in header:
        return True
    return len(header) >= 3 and " " not in term and header in term


def map_columns(header: Sequence[str]) -> ColumnMap:
    """Map header cells to fields; the first matching synonym wins."""

    normalized = [str(cell).strip().lower().rstrip(".").strip() for cell in header]
    claimed: set[int] = set()
    columns: dict[str, int] = {}
    for name, synonyms in COLUMN_SYNONYMS:
        for term in synonyms:
            index = next(
                (
                    position
                    for position, cell in enumerate(normalized)
                    if position not in claimed and _header_matches(cell, term)
                ),
                -1,
            )
            if index >= 0:
                columns[name] = index
                claimed.add(index)
                break
    return ColumnMap(columns)


def _swiss_triggered(rows: Sequence[Row]) -> bool:
    for row in rows:
        first = _first_cell(row).lower()
        if first and any(token in first for token in SWISS_CATEGORY_TOKENS):
            return True
    for combination in SWISS_HEADER_COMBINATIONS:
        if any(all(term in _lower(row) for term in combination) for row in rows):
            return True
    return False


def _swiss_layout_fits(rows: Sequence[Row]) -> bool:
    """Some row has a blank column 0, a symbol in column 1 and a quantity in column 2."""

    for row in rows:
        if len(row) < 3 or _first_cell(row):
            continue
        symbol = clean_symbol(row[1])
        if symbol and any(char.isalpha() for char in symbol) and parse_locale_number(row[2]) > 0:
            return True
    return False


def detect_schema(table: DecodedTable) -> Schema:
    rows = table.rows
    if _swiss_triggered(rows) and _swiss_layout_fits(rows):
        return Schema(layout=LAYOUT_SWISS, columns=SWISS_COLUMNS)

    header_index = find_header(rows)
    if header_index >= 0:
        header = list(rows[header_index])
        return Schema(
            layout=LAYOUT_GENERIC,
            columns=map_columns(header),
            header_index=header_index,
            header=header,
        )
    return Schema(layout=LAYOUT_HEADERLESS)


def _total_kind(label: str) -> Optional[RowKind]:
    if not TOTAL_KEYWORDS.search(label):
        return None
    lowered = label.lower()
    if lowered == "total" or any(marker in lowered for marker in GRAND_TOTAL_MARKERS):
        return RowKind.GRAND_TOTAL
    return RowKind.SUBTOTAL


def classify_row(row: Sequence[str], state: FoldState) -> tuple[RowKind, FoldState]:
    """Classify one row and return the state to carry to the next row.

    Category rows replace the current category; total rows keep the largest
    number seen across all totals. Other kinds leave the state untouched.
    """

    if not row or not any(str(cell).strip() for cell in row):
        return RowKind.BLANK, state

    if is_category_row(row):
        category = match_category(_first_cell(row)) or state.category
        return RowKind.CATEGORY, replace(state, category=category)

    kind = _total_kind(_label_cell(row))
    if kind is not None:
        harvested = max(state.harvested_total, largest_number(row))
        return kind, replace(state, harvested_total=harvested)

    if is_header_row(row):
        return RowKind.HEADER, state
    return RowKind.POSITION, state


def _merge_text_name(row: Row) -> Row:
    """Join the words between the symbol and the first number into one name cell."""

    if len(row) < 3:
        return row
    index = 1
    while index < len(row) and not looks_numeric(row[index]) and not CURRENCY_CODE.match(row[index]):
        index += 1
    if index <= 2:
        return row
    return [row[0], " ".join(row[1:index]), *row[index:]]


def headerless_columns(row: Row) -> ColumnMap:
    """Positional layout: ``symbol, name, qty, price[, ccy][, total]``.

    When the second cell is already numeric the name is absent.
    """

    if len(row) > 1 and looks_numeric(row[1]):
        names = ("symbol", "quantity", "price", "currency", "total_value")
    else:
        names = ("symbol", "name", "quantity", "price", "currency", "total_value")
    return ColumnMap({name: index for index, name in enumerate(names) if index < len(row)})


def _headerless_position(row: Row, table: DecodedTable, state: FoldState, base_currency: str) -> Optional[Position]:
    if table.mode == MODE_TEXT:
        row = _merge_text_name(row)
    if len(row) < 3:
        return None
    if not any(char.isalpha() for char in clean_symbol(row[0])):
        return None
    return extract_position(row, headerless_columns(row), state.category, base_currency)


def scan_rows(table: DecodedTable, base_currency: str = "CHF") -> ScanResult:
    """Fold the classifier over ``table`` and extract every position row."""

    schema = detect_schema(table)
    LOGGER.info("Detected %s layout (%d rows)", schema.layout, len(table.rows))

    state = FoldState()
    positions: list[Position] = []
    for index, row in enumerate(table.rows):
        kind, state = classify_row(row, state)
        if kind is not RowKind.POSITION or index <= schema.header_index:
            continue
        if schema.layout == LAYOUT_HEADERLESS:
            position = _headerless_position(row, table, state, base_currency)
        else:
            position = extract_position(row, schema.columns, state.category, base_currency)
        if position is None:
            LOGGER.debug("Skipping malformed row %d: %s", index, row)
            continue
        positions.append(position)

    return ScanResult(positions=positions, harvested_total=state.harvested_total, schema=schema)


__all__ = [
    "RowKind",
    "FoldState",
    "Schema",
    "ScanResult",
    "classify_row",
    "detect_schema",
    "find_header",
    "map_columns",
    "headerless_columns",
    "scan_rows",
    "LAYOUT_SWISS",
    "LAYOUT_GENERIC",
    "LAYOUT_HEADERLESS",
]
