"""
Display formatting for single table cells and chart labels.

Dates render the way a US-locale browser would (`1/15/2024`,
`1/15/2024, 2:05:09 PM`), numbers use comma grouping.
"""
from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime
from typing import Any

import pandas as pd

PERCENT_HINTS = ("percent", "ratio", "rate")
ISO_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T|\s)")


def _is_percent_column(column_name: str) -> bool:
    lowered = (column_name or "").lower()
    return any(hint in lowered for hint in PERCENT_HINTS)


def _locale_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def _locale_datetime(value: datetime) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{_locale_date(value)}, {hour}:{value.minute:02d}:{value.second:02d} {meridiem}"


def _parse_date(text: str) -> datetime | None:
    parsed = pd.to_datetime(text, errors="coerce")
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def _format_number(value: numbers.Real, column_name: str) -> str:
    if isinstance(value, float) and math.isinf(value):
        return str(value)
    if _is_percent_column(column_name):
        return f"{float(value) * 100:.1f}%"
    if isinstance(value, numbers.Integral) or float(value).is_integer():
        return f"{int(value):,}"
    text = f"{float(value):,.2f}"
    # at least one fraction digit, at most two
    return text[:-1] if text.endswith("0") else text


def format_cell(value: Any, column_name: str = "") -> str:
    """Format one table cell for display. Never raises."""
    if value is None or value is pd.NaT:
        return "-"
    if isinstance(value, float) and math.isnan(value):
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return _locale_datetime(value)
    if isinstance(value, date):
        return _locale_date(value)
    if isinstance(value, numbers.Real):
        return _format_number(value, column_name)
    if isinstance(value, str):
        if ISO_DATETIME_PATTERN.match(value):
            parsed = _parse_date(value)
            return _locale_date(parsed) if parsed is not None else value
        return value
    return str(value)


def format_value(value: Any, key: str = "") -> str:
    """Chart-label variant of format_cell: dates are shown without a time part."""
    if isinstance(value, datetime):
        return _locale_date(value)
    if isinstance(value, str) and ISO_DATE_PATTERN.match(value):
        parsed = _parse_date(value)
        return _locale_date(parsed) if parsed is not None else value
    return format_cell(value, key)
