"""
FastAPI REST API for report assembly and visualization classification.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from insight_backend.cell_format import format_cell
from insight_backend.chart_utils import generate_placeholder_data
from insight_backend.conversations import Conversation, ConversationStore
from insight_backend.query_manager import QueryManager
from insight_backend.report_assembler import ReportAssembler
from insight_backend.report_gate import ReportContractError, validate_report
from insight_backend.report_models import Report
from insight_backend.table_data import (
    extract_insights_from_report,
    extract_results_from_messages,
    normalize_table_data,
    preserve_column_order,
    process_report_data_for_table,
    rows_to_csv,
)
from insight_backend.upstream_client import HttpAnalyticsClient
from insight_backend.viz_classifier import chart_axes, recommend_visualization_type

logger = logging.getLogger(__name__)

router = APIRouter(tags=["report-assembly-v1"])

# In-memory conversation store (reports are not persisted)
_CONVERSATIONS = ConversationStore()
_upstream_client: HttpAnalyticsClient | None = None
_assembler: ReportAssembler | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AssembleRequest(_CamelModel):
    response: Any = None
    query: str = ""
    dataset_id: str | None = Field(default=None, alias="datasetId")


class NormalizeRequest(BaseModel):
    results: Any = None


class RecommendRequest(BaseModel):
    rows: Any = None


class ConversationCreate(_CamelModel):
    dataset_id: str | None = Field(default=None, alias="datasetId")


class QueryRequest(_CamelModel):
    query: str = Field(min_length=1)
    dataset_id: str | None = Field(default=None, alias="datasetId")
    dataset_name: str | None = Field(default=None, alias="datasetName")


@router.get("/api/v1/health")
def health_check() -> dict[str, str]:
    return {"status": "ok", "service": "report-assembly", "version": "1.0.0"}


@router.post("/api/v1/reports/assemble")
def assemble_report(body: AssembleRequest) -> dict[str, Any]:
    report = _get_assembler().assemble(body.response, body.query, body.dataset_id)
    return _checked_payload(report)


@router.post("/api/v1/tables/normalize")
def normalize_table(body: NormalizeRequest) -> dict[str, Any]:
    return preserve_column_order(normalize_table_data(body.results))


@router.post("/api/v1/visualizations/recommend")
def recommend_visualization(body: RecommendRequest) -> dict[str, Any]:
    rows = normalize_table_data(body.rows)
    chart_type = recommend_visualization_type(rows)
    return {"type": chart_type, "config": chart_axes(rows, chart_type)}


@router.get("/api/v1/visualizations/placeholder")
def placeholder_visualization(chart_type: str = "line", points: int = 10, seed: int | None = None) -> dict[str, Any]:
    if chart_type not in {"line", "bar", "pie"}:
        raise HTTPException(status_code=400, detail="chart_type must be one of line, bar, pie.")
    if not 1 <= points <= 500:
        raise HTTPException(status_code=400, detail="points must be between 1 and 500.")
    rows = generate_placeholder_data(points, chart_type, seed)
    return {"type": chart_type, "data": rows, "config": chart_axes(rows, chart_type)}


@router.post("/api/v1/conversations")
def create_conversation(body: ConversationCreate | None = None) -> dict[str, Any]:
    client = _get_upstream_client()
    manager = QueryManager(client, report_service=client, assembler=_get_assembler())
    conversation = _CONVERSATIONS.create(manager, dataset_id=body.dataset_id if body else None)
    return {"conversation_id": conversation.conversation_id, "datasetId": conversation.dataset_id}


@router.post("/api/v1/conversations/{conversation_id}/query")
def run_query(conversation_id: str, body: QueryRequest) -> dict[str, Any]:
    conversation = _assert_conversation(conversation_id)
    dataset_id = body.dataset_id or conversation.dataset_id
    if body.dataset_name:
        conversation.dataset_name = body.dataset_name

    history = conversation.history()
    conversation.add_message("user", body.query)
    outcome = conversation.manager.run(body.query, dataset_id, history)

    superseded = HTTPException(status_code=409, detail="Query was superseded by a newer query.")
    if outcome.stale:
        raise superseded
    if outcome.error or outcome.report is None:
        detail = outcome.error or "Upstream query failed."
        if not conversation.manager.accept(
            outcome.ticket, lambda: conversation.add_message("assistant", detail, error=outcome.error)
        ):
            raise superseded
        raise HTTPException(status_code=502, detail=detail)

    report = outcome.report
    payload = _checked_payload(report)

    def _record() -> None:
        conversation.add_message(
            "assistant",
            report.sections[0].content,
            results=payload["results"],
            reportId=report.id,
            retries=outcome.retries,
        )
        conversation.add_report(report)

    if not conversation.manager.accept(outcome.ticket, _record):
        raise superseded
    return {"conversation_id": conversation_id, "ticket": outcome.ticket, "report": payload}


@router.get("/api/v1/conversations/{conversation_id}/results")
def latest_results(conversation_id: str) -> dict[str, Any]:
    conversation = _assert_conversation(conversation_id)
    return {"conversation_id": conversation_id, **extract_results_from_messages(conversation.messages)}


@router.get("/api/v1/conversations/{conversation_id}/reports")
def list_reports(conversation_id: str) -> dict[str, Any]:
    conversation = _assert_conversation(conversation_id)
    return {
        "conversation_id": conversation_id,
        "reports": [report.to_payload() for report in conversation.list_reports()],
    }


@router.get("/api/v1/conversations/{conversation_id}/reports/{report_id}")
def get_report(conversation_id: str, report_id: str) -> dict[str, Any]:
    return _assert_report(conversation_id, report_id).to_payload()


@router.get("/api/v1/conversations/{conversation_id}/reports/{report_id}/insights")
def get_report_insights(conversation_id: str, report_id: str) -> dict[str, Any]:
    payload = _assert_report(conversation_id, report_id).to_payload()
    return {"reportId": report_id, "insights": extract_insights_from_report(payload)}


@router.get("/api/v1/conversations/{conversation_id}/reports/{report_id}/export/csv")
def export_report_csv(conversation_id: str, report_id: str, formatted: bool = False) -> Response:
    payload = _assert_report(conversation_id, report_id).to_payload()
    rows = payload["results"] or process_report_data_for_table(payload)
    if formatted:
        rows = [{column: format_cell(value, column) for column, value in row.items()} for row in rows]
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report_id}.csv"'},
    )


@router.delete("/api/v1/conversations/{conversation_id}")
def clear_conversation(conversation_id: str) -> dict[str, str]:
    if not _CONVERSATIONS.delete(conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation '{conversation_id}' not found.")
    return {"conversation_id": conversation_id, "status": "cleared"}


def _get_upstream_client() -> HttpAnalyticsClient:
    global _upstream_client
    if _upstream_client is None:
        _upstream_client = HttpAnalyticsClient()
    return _upstream_client


def _get_assembler() -> ReportAssembler:
    global _assembler
    if _assembler is None:
        _assembler = ReportAssembler()
    return _assembler


def _assert_conversation(conversation_id: str) -> Conversation:
    conversation = _CONVERSATIONS.get(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail=f"Conversation '{conversation_id}' not found.")
    return conversation


def _assert_report(conversation_id: str, report_id: str) -> Report:
    report = _assert_conversation(conversation_id).get_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"Report '{report_id}' not found.")
    return report


def _checked_payload(report: Report) -> dict[str, Any]:
    payload = report.to_payload()
    try:
        validate_report(payload)
    except ReportContractError as exc:
        logger.error("Assembled report %s violates the report contract: %s", report.id, exc)
        raise HTTPException(status_code=500, detail=f"Invalid report assembled: {exc}") from exc
    return payload


def build_standalone_app() -> FastAPI:
    api_app = FastAPI(
        title="Insight Reports - Report Assembly Service",
        description="Report assembly, table normalization and chart recommendation.",
        version="1.0.0",
    )
    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api_app.include_router(router)
    return api_app
