from __future__ import annotations

from typing import Any

from jsonschema import ValidationError, validate

from insight_backend.report_schemas import REPORT_SCHEMA


class SchemaValidationError(ValueError):
    pass


class ReportContractError(ValueError):
    pass


def validate_schema(output: Any, schema: dict[str, Any]) -> None:
    try:
        validate(instance=output, schema=schema)
    except ValidationError as exc:
        raise SchemaValidationError(str(exc)) from exc


def _insight_keys(insights: list[dict[str, Any]]) -> list[tuple[str, str]]:
    return [(item.get("title", ""), item.get("description", "")) for item in insights]


def validate_insight_partition(payload: dict[str, Any]) -> None:
    """Sections of a complex report must split the report's insights without loss or reordering."""
    if payload.get("kind") != "complex":
        return
    flattened: list[dict[str, Any]] = []
    for section in payload.get("sections", []):
        flattened.extend(section.get("insights", []))
    if _insight_keys(flattened) != _insight_keys(payload.get("insights", [])):
        raise ReportContractError("Section insights do not reproduce the report's insight list in order.")


def validate_report(payload: dict[str, Any]) -> None:
    try:
        validate_schema(payload, REPORT_SCHEMA)
    except SchemaValidationError as exc:
        raise ReportContractError(str(exc)) from exc
    validate_insight_partition(payload)
