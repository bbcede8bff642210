"""Statement parsing: decoding, layout detection and row extraction."""
from __future__ import annotations

from .decoder import DecodedTable, decode, detect_delimiter
from .extractor import ColumnMap, clean_symbol, extract_position, fx_rate, normalize_category
from .numbers import looks_numeric, parse_locale_number, parse_percent
from .schema import FoldState, RowKind, ScanResult, classify_row, detect_schema, scan_rows
from .text import ExtractionError, extract_text, harvest_overview, parse_statement_date

__all__ = [
    "ColumnMap",
    "DecodedTable",
    "ExtractionError",
    "FoldState",
    "RowKind",
    "ScanResult",
    "classify_row",
    "clean_symbol",
    "decode",
    "detect_delimiter",
    "detect_schema",
    "extract_position",
    "extract_text",
    "fx_rate",
    "harvest_overview",
    "looks_numeric",
    "normalize_category",
    "parse_locale_number",
    "parse_percent",
    "parse_statement_date",
    "scan_rows",
]
