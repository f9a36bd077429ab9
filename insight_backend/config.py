from __future__ import annotations

import json
import logging
import os
from typing import Any

from insight_backend.report_gate import validate_schema
from insight_backend.report_schemas import GROUPING_RULES_SCHEMA

logger = logging.getLogger(__name__)

UPSTREAM_API_BASE_URL = os.getenv("UPSTREAM_API_BASE_URL", "http://localhost:5000/api").rstrip("/")
UPSTREAM_REQUEST_TIMEOUT = int(os.getenv("UPSTREAM_REQUEST_TIMEOUT", "120"))
UPSTREAM_API_TOKEN = os.getenv("UPSTREAM_API_TOKEN", "").strip()

REPORT_LOG_LEVEL = os.getenv("REPORT_LOG_LEVEL", "INFO").strip().upper()
REPORT_DEFAULT_CONTENT = os.getenv("REPORT_DEFAULT_CONTENT", "Here are the results")
REPORT_EMPTY_CONTENT = "No results found. Please try a different query."

REPORT_KEYWORDS = ("report", "chart", "graph", "visualize", "visualization")

# Sales dashboard groupings: rows tagged by `dataType` carry either a Client or a TherapyArea column.
DEFAULT_GROUPING_RULES: list[dict[str, Any]] = [
    {
        "field": "Client",
        "label": "Top Clients by Sales",
        "description": "Analysis of the top clients by total sales value.",
        "tag_field": "dataType",
        "tag_value": "client",
        "value_field": "total_amount",
    },
    {
        "field": "TherapyArea",
        "label": "Top Therapy Areas by Sales",
        "description": "Analysis of the top therapy areas by total sales value.",
        "tag_field": "dataType",
        "tag_value": "therapyArea",
        "value_field": "total_amount",
    },
]


def load_grouping_rules(raw: str | None = None) -> list[dict[str, Any]]:
    """Grouping rules from REPORT_GROUPING_RULES (JSON list), else the defaults."""
    if raw is None:
        raw = os.getenv("REPORT_GROUPING_RULES", "")
    raw = raw.strip()
    if not raw:
        return [dict(rule) for rule in DEFAULT_GROUPING_RULES]
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"REPORT_GROUPING_RULES is not valid JSON: {exc}") from exc
    validate_schema(parsed, GROUPING_RULES_SCHEMA)
    logger.debug("Loaded %d grouping rules from environment", len(parsed))
    return parsed
