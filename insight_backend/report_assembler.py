"""
Report assembly: turns one loosely-structured upstream response into a
canonical Report document.

Three paths, chosen from the response shape:
  - simple         no complexity flag, no charts, no insights
  - visualization  upstream charts and/or insights, single section
  - complex        `isComplex` set; one section per detected grouping

Every path yields at least one section and carries the flat result table.
Malformed or missing fields fall back to empty collections or placeholder
text; assembly itself never raises on bad input and performs no I/O.
"""
from __future__ import annotations

import logging
import math
import time
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from insight_backend.cell_format import format_value
from insight_backend.chart_utils import color_for_index, format_label, sort_data
from insight_backend.config import REPORT_DEFAULT_CONTENT, REPORT_EMPTY_CONTENT
from insight_backend.grouping import Grouping, GroupingDetector, default_detector
from insight_backend.report_models import (
    VISUALIZATION_TYPES,
    Insight,
    Report,
    ReportSection,
    VisualizationSpec,
)
from insight_backend.table_data import normalize_table_data, preserve_column_order
from insight_backend.viz_classifier import (
    chart_axes,
    column_types,
    is_identifier_column,
    recommend_visualization_type,
)

logger = logging.getLogger(__name__)

SIMPLE_SECTION_TITLE = "Query Results"
ANALYSIS_SECTION_TITLE = "Analysis Results"
UNTITLED_REPORT = "Untitled Report"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _new_report_id() -> str:
    # Millisecond stamp keeps ids sortable; the random suffix separates reports built in the same millisecond.
    return f"report-{time.time_ns() // 1_000_000}-{uuid.uuid4().hex[:8]}"


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return list(value)
    return []


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value) if isinstance(value, (bool, int, float)) else False


def _row_objects(rows: Any) -> list[dict[str, Any]]:
    items = _as_list(rows)
    objects = [{str(key): value for key, value in row.items()} for row in items if isinstance(row, Mapping)]
    if len(objects) != len(items):
        logger.warning("Dropped %d non-object rows", len(items) - len(objects))
    return objects


# ─────────────────────────────────────────────────────────────────
# Coercion of upstream fields
# ─────────────────────────────────────────────────────────────────

def coerce_insights(raw: Any) -> list[Insight]:
    """Upstream insights as Insight objects; content is carried over verbatim."""
    insights: list[Insight] = []
    for item in _as_list(raw):
        if isinstance(item, Mapping):
            insights.append(
                Insight(
                    title=str(item.get("title") or ""),
                    description=str(item.get("description") or ""),
                )
            )
        elif item is not None:
            insights.append(Insight(title="", description=str(item)))
    return insights


def coerce_visualization(raw: Any) -> VisualizationSpec | None:
    if not isinstance(raw, Mapping):
        return None
    data = _row_objects(normalize_table_data(raw.get("data")))
    viz_type = str(raw.get("type") or "").strip().lower()
    if viz_type not in VISUALIZATION_TYPES:
        viz_type = recommend_visualization_type(data)
    config = raw.get("config")
    return VisualizationSpec(
        type=viz_type,
        title=str(raw.get("title") or ""),
        data=data,
        config={str(key): value for key, value in config.items()} if isinstance(config, Mapping) else {},
    )


def coerce_visualizations(raw: Any) -> list[VisualizationSpec]:
    specs = []
    for item in _as_list(raw):
        spec = coerce_visualization(item)
        if spec is None:
            logger.debug("Skipping visualization that is not an object: %r", type(item).__name__)
            continue
        specs.append(spec)
    return specs


# ─────────────────────────────────────────────────────────────────
# Derived charts
# ─────────────────────────────────────────────────────────────────

def _sorted_bar(
    title: str, data: list[dict[str, Any]], x_axis: str, y_axis: str, color_index: int = 0, **extra: Any
) -> VisualizationSpec:
    ordered = sort_data(data, y_axis, "desc")
    return VisualizationSpec(
        type="bar",
        title=title,
        data=ordered,
        config={
            "xAxis": x_axis,
            "yAxis": y_axis,
            "sortBy": y_axis,
            "sortDirection": "desc",
            "color": color_for_index(color_index),
            "labels": [format_value(row.get(x_axis), x_axis) for row in ordered],
            **extra,
        },
    )


def derive_bar_from_table(table: VisualizationSpec, color_index: int = 0) -> VisualizationSpec | None:
    """Bar chart mirroring a table: x skips a leading id column, y is the next column."""
    columns = preserve_column_order(table.data)["columnOrder"]
    if len(columns) > 2 and is_identifier_column(columns[0]):
        columns = columns[1:]
    if len(columns) < 2:
        return None
    x_axis, y_axis = columns[0], columns[1]
    return _sorted_bar(
        f"{format_label(y_axis)} by {format_label(x_axis)}",
        table.data,
        x_axis,
        y_axis,
        color_index,
        derivedFrom=table.title or "table",
    )


def _value_field(grouping: Grouping, data: list[dict[str, Any]]) -> str | None:
    if grouping.value_field and any(grouping.value_field in row for row in data):
        return grouping.value_field
    for column, kind in column_types(data).items():
        if kind == "number" and column != grouping.field:
            return column
    return None


def derive_grouping_bar(
    grouping: Grouping, rows: list[dict[str, Any]], color_index: int = 0
) -> VisualizationSpec | None:
    data = [row for row in rows if grouping.predicate(row)]
    if not data:
        data = next((list(viz.data) for viz in grouping.sources if viz.data), [])
    value_field = _value_field(grouping, data) or grouping.value_field
    if value_field is None:
        return None
    return _sorted_bar(grouping.label, data, grouping.field, value_field, color_index)


def split_insights(insights: list[Insight], parts: int) -> list[list[Insight]]:
    """Positional split: each chunk holds ceil(n / parts) insights, the last ones may be short or empty."""
    if parts <= 0:
        return []
    size = math.ceil(len(insights) / parts)
    return [insights[i * size : (i + 1) * size] for i in range(parts)]


# ─────────────────────────────────────────────────────────────────
# Assembler
# ─────────────────────────────────────────────────────────────────

class ReportAssembler:
    """
    Builds Report documents from upstream responses.
    Usage:
        report = ReportAssembler().assemble(response, "top clients", "ds_1")
    """

    def __init__(self, detector: GroupingDetector | None = None, default_content: str = REPORT_DEFAULT_CONTENT) -> None:
        self.detector = detector or default_detector()
        self.default_content = default_content or "Here are the results"

    def assemble(self, raw_response: Any, query: str, dataset_id: str | None) -> Report:
        response: Mapping[str, Any] = raw_response if isinstance(raw_response, Mapping) else {}

        rows = _row_objects(normalize_table_data(response.get("results")))
        visualizations = coerce_visualizations(response.get("visualizations"))
        insights = coerce_insights(response.get("insights"))
        narrative = _text(response.get("narrative"))
        prompt = _text(response.get("prompt"))
        query = _text(query)

        if _flag(response.get("isComplex")):
            kind = "complex"
            sections = self._complex_sections(rows, visualizations, insights, narrative)
        elif visualizations or insights:
            kind = "visualization"
            sections = [self._visualization_section(visualizations, insights, narrative or _text(response.get("aiResponse")))]
        else:
            kind = "simple"
            sections = [self._simple_section(rows, _text(response.get("aiResponse")) or narrative)]

        logger.debug(
            "Assembled %s report: %d sections, %d rows, dataset=%s", kind, len(sections), len(rows), dataset_id
        )
        return Report(
            id=_new_report_id(),
            title=prompt or query or UNTITLED_REPORT,
            query=query or prompt,
            created_at=_utc_now_iso(),
            sections=sections,
            results=rows,
            dataset_id=dataset_id,
            kind=kind,
            narrative=narrative,
            insights=insights,
            visualizations=visualizations,
        )

    def _simple_section(self, rows: list[dict[str, Any]], answer: str) -> ReportSection:
        visualizations: list[VisualizationSpec] = []
        if rows:
            chart_type = recommend_visualization_type(rows)
            axes = chart_axes(rows, chart_type)
            title = (
                f"{format_label(axes['yAxis'])} by {format_label(axes['xAxis'])}"
                if "xAxis" in axes and "yAxis" in axes
                else SIMPLE_SECTION_TITLE
            )
            visualizations.append(VisualizationSpec(type=chart_type, title=title, data=rows, config=axes))

        content = answer or (self.default_content if rows else REPORT_EMPTY_CONTENT)
        return ReportSection(
            title=SIMPLE_SECTION_TITLE,
            content=content,
            visualizations=visualizations,
            insights=[],
            table_data=rows,
        )

    def _visualization_section(
        self, visualizations: list[VisualizationSpec], insights: list[Insight], narrative: str
    ) -> ReportSection:
        expanded: list[VisualizationSpec] = []
        for position, viz in enumerate(visualizations):
            expanded.append(viz)
            if viz.type == "table":
                derived = derive_bar_from_table(viz, position)
                if derived is not None:
                    expanded.append(derived)
        return ReportSection(
            title=ANALYSIS_SECTION_TITLE,
            content=narrative or self.default_content,
            visualizations=expanded,
            insights=insights,
        )

    def _complex_sections(
        self,
        rows: list[dict[str, Any]],
        visualizations: list[VisualizationSpec],
        insights: list[Insight],
        narrative: str,
    ) -> list[ReportSection]:
        groupings = self.detector.detect(visualizations)
        if not groupings:
            logger.debug("No groupings detected; falling back to a single section")
            return [
                ReportSection(
                    title=ANALYSIS_SECTION_TITLE,
                    content=narrative or self.default_content,
                    visualizations=visualizations,
                    insights=insights,
                )
            ]

        sections = []
        for position, (grouping, chunk) in enumerate(zip(groupings, split_insights(insights, len(groupings)))):
            charts: list[VisualizationSpec] = []
            derived = derive_grouping_bar(grouping, rows, position)
            if derived is not None:
                charts.append(derived)
            charts.extend(grouping.sources)
            sections.append(
                ReportSection(
                    title=grouping.label,
                    content=grouping.description or self.default_content,
                    visualizations=charts,
                    insights=chunk,
                )
            )
        return sections


def assemble(raw_response: Any, query: str, dataset_id: str | None, detector: GroupingDetector | None = None) -> Report:
    return ReportAssembler(detector=detector).assemble(raw_response, query, dataset_id)
