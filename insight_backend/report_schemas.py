from __future__ import annotations

INSIGHT_SCHEMA: dict = {
    "type": "object",
    "required": ["title", "description"],
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
    },
}


VISUALIZATION_SPEC_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "required": ["type", "title", "data", "config"],
    "properties": {
        "type": {"type": "string", "enum": ["bar", "line", "pie", "table", "kpi", "scatter", "combo"]},
        "title": {"type": "string"},
        "data": {"type": "array", "items": {"type": "object"}},
        "config": {"type": "object"},
    },
}


REPORT_SECTION_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "required": ["title", "content", "visualizations", "insights"],
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "content": {"type": "string", "minLength": 1},
        "visualizations": {"type": "array", "items": VISUALIZATION_SPEC_SCHEMA},
        "insights": {"type": "array", "items": INSIGHT_SCHEMA},
        "tableData": {"type": ["array", "null"], "items": {"type": "object"}},
    },
}


REPORT_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "required": ["id", "title", "query", "createdAt", "sections", "results"],
    "properties": {
        "id": {"type": "string", "pattern": "^report-[0-9]+"},
        "title": {"type": "string", "minLength": 1},
        "query": {"type": "string"},
        "createdAt": {"type": "string", "minLength": 1},
        "sections": {"type": "array", "minItems": 1, "items": REPORT_SECTION_SCHEMA},
        "results": {"type": "array", "items": {"type": "object"}},
        "datasetId": {"type": ["string", "null"]},
        "kind": {"type": "string", "enum": ["simple", "visualization", "complex"]},
        "narrative": {"type": "string"},
        "insights": {"type": "array", "items": INSIGHT_SCHEMA},
        "visualizations": {"type": "array", "items": VISUALIZATION_SPEC_SCHEMA},
    },
}


GROUPING_RULES_SCHEMA: dict = {
    "type": "array",
    "items": {
        "type": "object",
        "additionalProperties": False,
        "required": ["field"],
        "properties": {
            "field": {"type": "string", "minLength": 1},
            "label": {"type": "string"},
            "description": {"type": "string"},
            "tag_field": {"type": ["string", "null"]},
            "tag_value": {},
            "value_field": {"type": ["string", "null"]},
        },
    },
}
