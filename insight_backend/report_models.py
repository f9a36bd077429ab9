from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

VisualizationType = Literal["bar", "line", "pie", "table", "kpi", "scatter", "combo"]
VISUALIZATION_TYPES: tuple[str, ...] = ("bar", "line", "pie", "table", "kpi", "scatter", "combo")

ReportKind = Literal["simple", "visualization", "complex"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Insight(_Frozen):
    title: str = ""
    description: str = ""


class VisualizationSpec(_Frozen):
    type: VisualizationType
    title: str = ""
    data: list[dict[str, Any]] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)


class ReportSection(_Frozen):
    title: str
    content: str
    visualizations: list[VisualizationSpec] = Field(default_factory=list)
    insights: list[Insight] = Field(default_factory=list)
    table_data: list[dict[str, Any]] | None = Field(default=None, alias="tableData")


class Report(_Frozen):
    id: str
    title: str
    query: str
    created_at: str = Field(alias="createdAt")
    sections: list[ReportSection] = Field(min_length=1)
    results: list[dict[str, Any]] = Field(default_factory=list)
    dataset_id: str | None = Field(default=None, alias="datasetId")
    kind: ReportKind = "simple"
    narrative: str = ""
    insights: list[Insight] = Field(default_factory=list)
    visualizations: list[VisualizationSpec] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
