"""Locale-aware number parsing for bank statement cells."""
from __future__ import annotations

import re


NON_NUMERIC = re.compile(r"[^0-9.\-]")
DIGITS = re.compile(r"^\d+$")
APOSTROPHES = ("'", "’", "ʼ")


def parse_locale_number(value: str | None) -> float:
    """Parse a French/German/Swiss/English formatted number.

    ``1'234.56``, ``1'234,56``, ``1234,56`` and ``1,234.56`` all parse to
    ``1234.56``. Empty or unparseable input returns ``0.0`` so a single bad
    cell never aborts a document; callers validate required fields.
    """

    if value is None:
        return 0.0
    cleaned = str(value).strip()
    if not cleaned:
        return 0.0

    for apostrophe in APOSTROPHES[1:]:
        cleaned = cleaned.replace(apostrophe, "'")

    has_apostrophe = "'" in cleaned
    has_comma = "," in cleaned
    if has_apostrophe and has_comma:
        cleaned = cleaned.replace("'", "").replace(",", ".", 1)
    elif has_comma:
        parts = cleaned.split(",")
        if len(parts) == 2 and parts[0].strip() and parts[1].strip():
            after = parts[1].strip()
            if len(after) <= 3 and DIGITS.match(after):
                cleaned = cleaned.replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif len(parts) > 2:
            cleaned = cleaned.replace(",", "")
        else:
            # Leading or trailing comma.
            cleaned = cleaned.replace(",", ".")
    elif has_apostrophe:
        cleaned = cleaned.replace("'", "")

    cleaned = NON_NUMERIC.sub("", cleaned)
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        return _leading_number(cleaned)


def _leading_number(cleaned: str) -> float:
    """Best effort for leftovers like ``1.2.3`` or ``5-``."""

    match = re.match(r"-?\d+(?:\.\d+)?", cleaned)
    return float(match.group(0)) if match else 0.0


def parse_percent(value: str | None) -> float:
    """Parse a percentage cell such as ``-1,62 %`` into ``-1.62``."""

    if value is None:
        return 0.0
    return parse_locale_number(str(value).replace("%", ""))


def looks_numeric(value: str | None) -> bool:
    """Return True when the cell holds a number in any supported format."""

    if value is None:
        return False
    text = str(value).strip().replace("%", "")
    if not text:
        return False
    return bool(re.fullmatch(r"[-+]?[\d'’.,\s]*\d[\d'’.,\s]*", text))


__all__ = ["parse_locale_number", "parse_percent", "looks_numeric"]
