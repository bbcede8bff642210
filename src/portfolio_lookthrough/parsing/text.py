"""Raw document handling: bytes to text, plus statement-level facts."""
from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Optional, Union

from bs4 import BeautifulSoup
from dateutil import parser

from ..models import AccountOverview
from .numbers import parse_locale_number

LOGGER = logging.getLogger(__name__)

TEXT_SUFFIXES = {".csv", ".tsv", ".txt", ".text", ""}
HTML_SUFFIXES = {".html", ".htm", ".xhtml"}
SPREADSHEET_SUFFIXES = {".xls", ".xlsx", ".xlsm", ".ods", ".numbers"}

COPY_PASTE_HINT = (
    "Open the statement, select all of its text, copy it and paste it as plain "
    "text, or export the positions as CSV from your bank's portal."
)

AMOUNT = r"(?:CHF|USD|EUR|GBP)?[ \t]*[:;]?[ \t]*(?:CHF|USD|EUR|GBP)?[ \t]*(-?\d[\d'’.,]*)"
OVERVIEW_PATTERNS = {
    "total_value": re.compile(
        r"(?:Valeur totale|Total value|Gesamtwert|Total portfolio value)[ \t]*" + AMOUNT,
        re.IGNORECASE,
    ),
    "cash_balance": re.compile(
        r"(?:Solde espèces|Solde especes|Cash balance|Barbestand|Liquidités)[ \t]*" + AMOUNT,
        re.IGNORECASE,
    ),
    "securities_value": re.compile(
        r"(?:Valeur des titres|Securities value|Wertschriften)[ \t]*" + AMOUNT,
        re.IGNORECASE,
    ),
}

DATE_CONTEXT = re.compile(
    r"\b(?:date|au|per|as of|as at|stand|état|etat|du)\s*:?\s*"
    r"(\d{1,2}[./-]\d{1,2}[./-]\d{2,4}|\d{4}-\d{2}-\d{2})",
    re.IGNORECASE,
)
DATE_SCAN_LINES = 15


class ExtractionError(ValueError):
    """Raised when a document cannot be turned into statement text."""


def _decode_bytes(data: bytes) -> str:
    if b"\x00" in data[:1024] and not data.startswith((b"\xff\xfe", b"\xfe\xff")):
        raise ExtractionError(f"Binary file is not a supported statement format. {COPY_PASTE_HINT}")
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        return data.decode("utf-16")
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def html_to_text(markup: str) -> str:
    """Flatten HTML tables into tab separated rows; other markup to plain lines."""

    soup = BeautifulSoup(markup, "html.parser")
    tables = soup.find_all("table")
    if not tables:
        return soup.get_text("\n", strip=True)

    lines: list[str] = []
    for table in tables:
        for row in table.find_all("tr"):
            cells = [
                cell.get_text(" ", strip=True).replace("\t", " ")
                for cell in row.find_all(["td", "th"])
            ]
            if any(cells):
                lines.append("\t".join(cells))
    return "\n".join(lines)


def _looks_like_html(text: str) -> bool:
    head = text.lstrip()[:512].lower()
    return head.startswith("<!doctype html") or "<html" in head or "<table" in head


def extract_text(source: Union[str, Path, bytes], filename: Optional[str] = None) -> str:
    """Return statement text from a file path or raw upload bytes.

    CSV, TSV and plain text are decoded as UTF-8 (falling back to Windows-1252).
    HTML tables are flattened. PDF and spreadsheet files raise
    :class:`ExtractionError` asking the user to paste the text instead.
    """

    if isinstance(source, (str, Path)):
        path = Path(source)
        filename = filename or path.name
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(f"Cannot read {path}: {exc}") from exc
    else:
        data = source

    suffix = Path(filename).suffix.lower() if filename else ""
    if suffix == ".pdf" or data.startswith(b"%PDF"):
        raise ExtractionError(f"PDF statements cannot be read directly. {COPY_PASTE_HINT}")
    if suffix in SPREADSHEET_SUFFIXES or data.startswith(b"PK\x03\x04"):
        raise ExtractionError(f"Spreadsheet files are not supported. {COPY_PASTE_HINT}")

    text = _decode_bytes(data)
    if suffix in HTML_SUFFIXES or _looks_like_html(text):
        LOGGER.debug("Flattening HTML statement %s", filename or "<upload>")
        return html_to_text(text)
    if suffix not in TEXT_SUFFIXES:
        LOGGER.warning("Unknown extension %r; treating %s as text", suffix, filename)
    return text


def harvest_overview(text: str) -> AccountOverview:
    """Pick account-level figures out of free text when the statement states them."""

    values: dict[str, float] = {}
    for field_name, pattern in OVERVIEW_PATTERNS.items():
        match = pattern.search(text or "")
        if match:
            values[field_name] = parse_locale_number(match.group(1))
    return AccountOverview(**values)


def parse_statement_date(text: str) -> Optional[date]:
    """Return the statement date found near the top of the document."""

    for line in (text or "").splitlines()[:DATE_SCAN_LINES]:
        match = DATE_CONTEXT.search(line)
        if not match:
            continue
        try:
            return parser.parse(match.group(1), dayfirst=True).date()
        except (ValueError, OverflowError):
            LOGGER.debug("Ignoring unparseable statement date %r", match.group(1))
    return None


__all__ = [
    "ExtractionError",
    "extract_text",
    "html_to_text",
    "harvest_overview",
    "parse_statement_date",
]
