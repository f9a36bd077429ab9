from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def normalize_table_data(raw_results: Any) -> list[Row]:
    """
    Normalize upstream result rows into a list of row objects.

    Accepts array-of-objects (returned as-is) or array-of-arrays where the
    first row holds the column headers.
    """
    if not _is_sequence(raw_results) or len(raw_results) == 0:
        logger.debug("No results to normalize")
        return []

    first = raw_results[0]
    if isinstance(first, Mapping):
        return list(raw_results)

    if _is_sequence(first):
        headers = [str(header) for header in first]
        rows: list[Row] = []
        for raw_row in raw_results[1:]:
            values = list(raw_row) if _is_sequence(raw_row) else []
            rows.append({header: values[i] if i < len(values) else None for i, header in enumerate(headers)})
        return rows

    logger.warning("Unexpected results format: first element is %s", type(first).__name__)
    return raw_results


def preserve_column_order(rows: Any) -> dict[str, Any]:
    if not _is_sequence(rows) or len(rows) == 0 or not isinstance(rows[0], Mapping):
        return {"results": [], "columnOrder": []}
    return {"results": list(rows), "columnOrder": list(rows[0].keys())}


def extract_results_from_messages(messages: Any) -> dict[str, Any]:
    """Results carried by the most recent assistant message, if any."""
    empty = {"results": [], "error": None, "retries": 0}
    if not _is_sequence(messages):
        return empty

    for message in reversed(messages):
        if not isinstance(message, Mapping) or message.get("role") != "assistant":
            continue
        results = message.get("results")
        if _is_sequence(results):
            return {
                "results": list(results),
                "error": message.get("error"),
                "retries": message.get("retries") or 0,
            }
    return empty


def process_report_data_for_table(report: Any) -> list[Row]:
    if not isinstance(report, Mapping):
        return []

    data = report.get("data")
    if _is_sequence(data) and data and isinstance(data[0], Mapping):
        return list(data)

    visualizations = report.get("visualizations")
    if not _is_sequence(visualizations):
        return []

    for viz in visualizations:
        if isinstance(viz, Mapping) and viz.get("type") == "table" and _is_sequence(viz.get("data")):
            return list(viz["data"])
    for viz in visualizations:
        if isinstance(viz, Mapping) and _is_sequence(viz.get("data")) and viz["data"]:
            return list(viz["data"])
    return []


def extract_insights_from_report(report: Any) -> list[Any]:
    if not isinstance(report, Mapping) or not _is_sequence(report.get("insights")):
        return []
    return list(report["insights"])


def rows_to_csv(rows: list[Row], column_order: list[str] | None = None) -> str:
    if not rows:
        return ",".join(column_order or []) + ("\n" if column_order else "")
    columns = column_order or preserve_column_order(rows)["columnOrder"]
    df = pd.DataFrame.from_records(rows, columns=columns)
    return df.to_csv(index=False)
