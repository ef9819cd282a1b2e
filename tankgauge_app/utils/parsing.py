"""
Parsing helpers for operator- and file-entered values.

Import files and forms mix Brazilian ("1.234,5") and plain ("1234.5") number
formats and both ISO and dd/mm/yyyy dates.
"""

from __future__ import annotations

import math
from datetime import date, datetime

_DATE_FORMATS = ("%d/%m/%Y",)
_DATETIME_FORMATS = ("%d/%m/%Y %H:%M", "%d/%m/%Y %H:%M:%S", "%d/%m/%Y")


def br_to_number(value: str | float | int | None) -> float | None:
    """
    Convert a Brazilian- or plain-formatted number to float.

    A comma marks Brazilian formatting: dots are thousands separators and the
    comma is the decimal mark. Without a comma the text is read as a plain
    number, so "12.5" stays 12.5.

    Args:
        value: Text as entered, or an already-numeric value

    Returns:
        The number, or None for None/blank text

    Raises:
        ValueError: if the text is not a finite number
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def parse_trim(value: str | int) -> int:
    """Parse a trim condition such as "+50", "0" or "-25" (hundredths of a degree)."""
    number = br_to_number(value)
    if number is None:
        raise ValueError("Trim is required")
    if not float(number).is_integer():
        raise ValueError(f"Trim must be a whole number: {value!r}")
    return int(number)


def parse_date(value: str | None) -> date | None:
    """Parse YYYY-MM-DD or dd/mm/yyyy; blank gives None."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r}")


def parse_datetime(value: str | None) -> datetime:
    """Parse an ISO date-time ("2025-01-02 10:30" or with "T") or dd/mm/yyyy [HH:MM[:SS]]."""
    text = (value or "").strip()
    if not text:
        raise ValueError("Date/time is required")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid date/time: {value!r}")


def number_to_br(value: float | None, decimals: int = 2) -> str:
    """Format for display with a decimal comma; non-finite values show as an em dash."""
    if value is None or not math.isfinite(value):
        return "—"
    return f"{value:.{decimals}f}".replace(".", ",")
