"""
Grouping detectors for complex (multi-entity) responses.

A detector looks at the shape of the upstream visualization data and
returns one Grouping per logical entity set. Each Grouping becomes one
report section; its predicate selects the matching rows of the flat
result table. Domain field names live in configuration rules, not here.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from insight_backend.chart_utils import format_label
from insight_backend.config import load_grouping_rules
from insight_backend.report_models import VisualizationSpec
from insight_backend.viz_classifier import column_types, is_identifier_column

logger = logging.getLogger(__name__)

RowPredicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class GroupingRule:
    field: str
    label: str = ""
    description: str = ""
    tag_field: str | None = None
    tag_value: Any = None
    value_field: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> GroupingRule:
        return cls(
            field=str(raw["field"]),
            label=str(raw.get("label") or ""),
            description=str(raw.get("description") or ""),
            tag_field=raw.get("tag_field"),
            tag_value=raw.get("tag_value"),
            value_field=raw.get("value_field"),
        )


@dataclass(frozen=True)
class Grouping:
    label: str
    field: str
    predicate: RowPredicate
    description: str = ""
    value_field: str | None = None
    sources: tuple[VisualizationSpec, ...] = ()


def _has_field(name: str) -> RowPredicate:
    return lambda row: row.get(name) is not None


def _tagged(tag_field: str, tag_value: Any) -> RowPredicate:
    return lambda row: row.get(tag_field) == tag_value


def _first_row(viz: VisualizationSpec) -> Mapping[str, Any] | None:
    if viz.data and isinstance(viz.data[0], Mapping):
        return viz.data[0]
    return None


class GroupingDetector(ABC):
    @abstractmethod
    def detect(self, visualizations: list[VisualizationSpec]) -> list[Grouping]:
        raise NotImplementedError


class FieldRuleDetector(GroupingDetector):
    """One grouping per configured rule whose field appears in some visualization's first row."""

    def __init__(self, rules: list[GroupingRule]) -> None:
        self.rules = list(rules)

    def detect(self, visualizations: list[VisualizationSpec]) -> list[Grouping]:
        groupings: list[Grouping] = []
        for rule in self.rules:
            sources = []
            for viz in visualizations:
                first = _first_row(viz)
                if first is not None and first.get(rule.field) not in (None, ""):
                    sources.append(viz)
            if not sources:
                continue

            label = rule.label or f"{format_label(rule.field)} Breakdown"
            predicate = _tagged(rule.tag_field, rule.tag_value) if rule.tag_field else _has_field(rule.field)
            groupings.append(
                Grouping(
                    label=label,
                    field=rule.field,
                    predicate=predicate,
                    description=rule.description or f"Analysis of results by {format_label(rule.field)}.",
                    value_field=rule.value_field,
                    sources=tuple(sources),
                )
            )
        return groupings


class LeadingFieldDetector(GroupingDetector):
    """
    Shape-based fallback: visualizations whose data leads with the same
    category column (and carries a numeric column) form one grouping.
    """

    def detect(self, visualizations: list[VisualizationSpec]) -> list[Grouping]:
        by_field: dict[str, list[VisualizationSpec]] = {}
        for viz in visualizations:
            types = column_types(viz.data)
            if "number" not in types.values():
                continue
            categories = [
                column for column, kind in types.items()
                if kind == "category" and not is_identifier_column(column)
            ]
            if categories:
                by_field.setdefault(categories[0], []).append(viz)

        return [
            Grouping(
                label=f"{format_label(name)} Breakdown",
                field=name,
                predicate=_has_field(name),
                description=f"Analysis of results by {format_label(name)}.",
                sources=tuple(sources),
            )
            for name, sources in by_field.items()
        ]


class CompositeDetector(GroupingDetector):
    """First detector that finds anything wins."""

    def __init__(self, detectors: list[GroupingDetector]) -> None:
        self.detectors = list(detectors)

    def detect(self, visualizations: list[VisualizationSpec]) -> list[Grouping]:
        for detector in self.detectors:
            groupings = detector.detect(visualizations)
            if groupings:
                logger.debug("%s detected %d groupings", type(detector).__name__, len(groupings))
                return groupings
        return []


def default_detector(rules: list[dict[str, Any]] | None = None) -> GroupingDetector:
    raw_rules = rules if rules is not None else load_grouping_rules()
    return CompositeDetector(
        [
            FieldRuleDetector([GroupingRule.from_dict(rule) for rule in raw_rules]),
            LeadingFieldDetector(),
        ]
    )


def detect_groupings(
    visualizations: list[VisualizationSpec], detector: GroupingDetector | None = None
) -> list[Grouping]:
    return (detector or default_detector()).detect(visualizations)
