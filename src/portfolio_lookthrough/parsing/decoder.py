"""Delimiter detection and row splitting for statement exports."""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import List

LOGGER = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","
SAMPLE_LINES = 10
CONSISTENCY_BONUS = 5

MODE_EMPTY = "empty"
MODE_TABLE = "table"
MODE_TEXT = "text"

WIDE_GAP = re.compile(r"\s{2,}")

Row = List[str]


@dataclass(slots=True)
class DecodedTable:
    """Rows split out of a raw export, with how they were split."""

    rows: list[Row] = field(default_factory=list)
    delimiter: str = DEFAULT_DELIMITER
    mode: str = MODE_EMPTY

    @property
    def is_empty(self) -> bool:
        return not self.rows


def _sample(text: str) -> list[str]:
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[:SAMPLE_LINES]


def score_delimiter(lines: list[str], delimiter: str) -> int:
    """Score how well ``delimiter`` splits the sampled lines."""

    score = 0
    column_count = -1
    consistent = True
    for line in lines:
        columns = len(line.split(delimiter))
        if column_count == -1:
            column_count = columns
        elif columns != column_count:
            consistent = False
        if columns > 1:
            score += columns
            if consistent:
                score += CONSISTENCY_BONUS
    return score


def detect_delimiter(text: str) -> str:
    """Pick the delimiter among ``, ; TAB |`` that best fits the first lines."""

    lines = _sample(text)
    best, best_score = DEFAULT_DELIMITER, 0
    for delimiter in CANDIDATE_DELIMITERS:
        score = score_delimiter(lines, delimiter)
        if score > best_score:
            best, best_score = delimiter, score
    LOGGER.debug("Detected delimiter %r (score %d)", best, best_score)
    return best


def is_free_text(text: str, delimiter: str) -> bool:
    """True when no line split looks tabular, as with text pasted from a PDF."""

    lines = _sample(text)
    if not lines:
        return False
    split_lines = sum(1 for line in lines if len(line.split(delimiter)) > 1)
    return split_lines * 2 < len(lines)


def has_content(cells: Row) -> bool:
    """True when some cell carries a letter or digit, not just separators."""

    return any(char.isalnum() for cell in cells for char in cell)


def _split_text_line(line: str) -> Row:
    stripped = line.strip()
    cells = [cell for cell in WIDE_GAP.split(stripped) if cell]
    if len(cells) > 1:
        return cells
    return stripped.split()


def decode(text: str | None) -> DecodedTable:
    """Split ``text`` into rows of cells.

    Empty input gives an empty table rather than an error. Ragged rows are kept
    as they are. Blank lines, and lines made only of separators, are dropped.
    """

    if text is None or not has_content([text]):
        return DecodedTable()

    text = text.lstrip("\ufeff")
    delimiter = detect_delimiter(text)
    if is_free_text(text, delimiter):
        rows = [row for row in map(_split_text_line, text.splitlines()) if has_content(row)]
        LOGGER.debug("Decoded %d free-text rows", len(rows))
        return DecodedTable(rows=rows, delimiter=" ", mode=MODE_TEXT)

    reader = csv.reader(io.StringIO(text), delimiter=delimiter, skipinitialspace=False)
    rows: list[Row] = []
    try:
        for raw in reader:
            if not has_content(raw):
                continue
            rows.append([cell.strip() for cell in raw])
    except csv.Error as exc:
        LOGGER.warning("CSV reader failed (%s); falling back to plain splitting", exc)
        rows = [
            [cell.strip() for cell in line.split(delimiter)]
            for line in text.splitlines()
            if has_content([line])
        ]
    LOGGER.debug("Decoded %d rows with delimiter %r", len(rows), delimiter)
    return DecodedTable(rows=rows, delimiter=delimiter, mode=MODE_TABLE)


__all__ = [
    "DecodedTable",
    "Row",
    "decode",
    "has_content",
    "detect_delimiter",
    "score_delimiter",
    "is_free_text",
    "MODE_EMPTY",
    "MODE_TABLE",
    "MODE_TEXT",
]
