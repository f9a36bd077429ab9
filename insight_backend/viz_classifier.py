from __future__ import annotations

import numbers
import re
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
ID_COLUMN_PATTERN = re.compile(r"^(id|key|uuid|pk|row_?id|index)$|_(id|key|uuid)$", re.IGNORECASE)

CHART_KINDS = ("line", "bar", "pie", "table")


def is_identifier_column(column: str) -> bool:
    """Primary-key-like column names: `id`, `client_id`, `ClientId`."""
    column = str(column)
    return bool(ID_COLUMN_PATTERN.search(column)) or column.endswith(("Id", "ID"))


def classify_value(value: Any) -> str:
    """date | number | category for a single cell."""
    if isinstance(value, date):
        return "date"
    if isinstance(value, str) and DATE_PREFIX.match(value):
        return "date"
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return "number"
    return "category"


def column_types(rows: Any) -> dict[str, str]:
    """Column kinds inferred from the first row only."""
    if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)) or not rows:
        return {}
    first = rows[0]
    if not isinstance(first, Mapping):
        return {}
    return {str(column): classify_value(value) for column, value in first.items()}


def recommend_visualization_type(rows: Any) -> str:
    """
    Rule-based chart pick from column shape:
    date + number -> line; category + number -> pie (1:1) or bar; else table.
    """
    types = list(column_types(rows).values())
    if not types:
        return "table"

    date_cols = types.count("date")
    numeric_cols = types.count("number")
    category_cols = types.count("category")

    if date_cols and numeric_cols:
        return "line"
    if category_cols and numeric_cols:
        return "pie" if category_cols == 1 and numeric_cols == 1 else "bar"
    return "table"


def chart_axes(rows: Any, kind: str | None = None) -> dict[str, str]:
    types = column_types(rows)
    kind = kind or recommend_visualization_type(rows)
    numeric = [column for column, col_kind in types.items() if col_kind == "number"]
    if kind == "line":
        x_candidates = [column for column, col_kind in types.items() if col_kind == "date"]
    else:
        x_candidates = [column for column, col_kind in types.items() if col_kind == "category"]

    axes: dict[str, str] = {}
    if x_candidates:
        axes["xAxis"] = x_candidates[0]
    if numeric:
        axes["yAxis"] = numeric[0]
    return axes
