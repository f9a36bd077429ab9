"""
Chart helpers shared by the report assembler and any renderer:
colors, axis labels, type-aware sorting and axis ticks.
"""
from __future__ import annotations

import math
import numbers
import re
import sys
from datetime import date, datetime, timedelta, timezone
from functools import cmp_to_key
from typing import Any

import numpy as np
import pandas as pd

# Tailwind 500 shades, readable on dark backgrounds
DEFAULT_COLORS = [
    "#3B82F6",
    "#8B5CF6",
    "#EC4899",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#06B6D4",
    "#6366F1",
    "#F97316",
    "#14B8A6",
    "#A855F7",
    "#84CC16",
]

HEX_PATTERN = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
RGB_PATTERN = re.compile(r"^rgba?\(", re.IGNORECASE)
ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def color_for_index(index: int) -> str:
    return DEFAULT_COLORS[index % len(DEFAULT_COLORS)]


def adjust_opacity(color: str, opacity: float) -> str:
    if not isinstance(color, str):
        return color

    hex_match = HEX_PATTERN.match(color.strip())
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
        return f"rgba({r}, {g}, {b}, {opacity})"

    if RGB_PATTERN.match(color.strip()):
        channels = re.findall(r"\d+", color)
        if len(channels) >= 3:
            r, g, b = (int(value) for value in channels[:3])
            return f"rgba({r}, {g}, {b}, {opacity})"

    return color


def format_label(key: str | None) -> str:
    """`total_amount` -> `Total Amount`."""
    if not key:
        return ""
    return " ".join(word[:1].upper() + word[1:] for word in str(key).split("_"))


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and ISO_DATE_PREFIX.match(value):
        stamp = pd.to_datetime(value, errors="coerce")
        if pd.isna(stamp):
            return None
        parsed = stamp.to_pydatetime()
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _compare_values(a: Any, b: Any) -> int:
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)

    a_date, b_date = _as_datetime(a), _as_datetime(b)
    if a_date is not None and b_date is not None:
        return (a_date > b_date) - (a_date < b_date)

    a_text, b_text = str(a).lower(), str(b).lower()
    return (a_text > b_text) - (a_text < b_text)


def sort_data(rows: list[dict[str, Any]], key: str, direction: str = "asc") -> list[dict[str, Any]]:
    """
    Stable, type-aware sort of row objects by one column.
    Null values always sort last; direction only flips non-null comparisons.
    """
    if not rows or not key:
        return list(rows or [])

    sign = -1 if direction == "desc" else 1

    def compare(row_a: dict[str, Any], row_b: dict[str, Any]) -> int:
        a, b = row_a.get(key), row_b.get(key)
        a_null = a is None or (isinstance(a, float) and math.isnan(a))
        b_null = b is None or (isinstance(b, float) and math.isnan(b))
        if a_null or b_null:
            return int(a_null) - int(b_null)
        return sign * _compare_values(a, b)

    return sorted(rows, key=cmp_to_key(compare))


def _nice_interval(raw_interval: float) -> float:
    magnitude = 10 ** math.floor(math.log10(raw_interval))
    normalized = raw_interval / magnitude
    if normalized < 1.5:
        nice = 1
    elif normalized < 3:
        nice = 2
    elif normalized < 7:
        nice = 5
    else:
        nice = 10
    return nice * magnitude


def calculate_ticks(min_value: float, max_value: float, tick_count: int = 5) -> list[float]:
    """Axis ticks on a 1/2/5 x 10^n grid covering [min, max] padded by 10%."""
    if min_value == max_value:
        return [min_value]
    if not (math.isfinite(min_value) and math.isfinite(max_value)):
        return []

    low, high = sorted((min_value, max_value))
    spread = high - low
    padded_min = low - spread * 0.1
    padded_max = high + spread * 0.1

    raw_interval = (padded_max - padded_min) / (max(tick_count, 2) - 1)
    # ranges near the float limits overflow when padded or underflow to a zero interval
    if not math.isfinite(raw_interval) or raw_interval < sys.float_info.min:
        return [low, high]

    interval = _nice_interval(raw_interval)
    nice_min = math.floor(padded_min / interval) * interval
    nice_max = math.ceil(padded_max / interval) * interval
    if not math.isfinite(nice_max - nice_min):
        return [low, high]

    steps = int(round((nice_max - nice_min) / interval))
    decimals = max(0, -math.floor(math.log10(interval))) + 2
    return [round(nice_min + step * interval, decimals) for step in range(steps + 1)]


def generate_placeholder_data(points: int = 10, chart_type: str = "line", seed: int | None = None) -> list[dict[str, Any]]:
    """Demo rows for previewing a chart before real data arrives."""
    rng = np.random.default_rng(seed)

    if chart_type == "pie":
        return [
            {"label": f"Category {i + 1}", "value": int(rng.integers(20, 120))}
            for i in range(points)
        ]

    if chart_type == "bar":
        return [
            {
                "category": f"Category {i + 1}",
                "value": int(rng.integers(20, 120)),
                "secondaryValue": int(rng.integers(10, 90)),
            }
            for i in range(points)
        ]

    today = date.today()
    return [
        {
            "date": (today - timedelta(days=points - i - 1)).isoformat(),
            "value": int(rng.integers(20, 120)),
            "trend": int(rng.integers(10, 90)),
        }
        for i in range(points)
    ]
