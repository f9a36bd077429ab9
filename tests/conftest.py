import os
from typing import Any

import pytest

# Keep upstream calls pointed at a host that is never contacted (tests use fakes).
os.environ.setdefault("UPSTREAM_API_BASE_URL", "http://upstream.invalid/api")
os.environ.setdefault("REPORT_LOG_LEVEL", "DEBUG")
os.environ["REPORT_GROUPING_RULES"] = ""

from insight_backend.upstream_client import UpstreamServiceError  # noqa: E402


class FakeAnalyticsClient:
    """In-memory stand-in for both upstream services."""

    def __init__(self) -> None:
        self.query_response: dict[str, Any] = {"results": []}
        self.report_response: dict[str, Any] | None = None
        self.query_error: str | None = None
        self.report_error: str | None = None
        self.calls: list[tuple[str, str, str | None]] = []

    def send_query(self, query, conversation_history, dataset_id):
        self.calls.append(("query", query, dataset_id))
        if self.query_error:
            raise UpstreamServiceError(self.query_error, status_code=500)
        return dict(self.query_response)

    def generate_report(self, query, dataset_id, conversation_history, report_type="standard"):
        self.calls.append(("report", query, dataset_id))
        if self.report_error or self.report_response is None:
            raise UpstreamServiceError(self.report_error or "Failed to generate report")
        return dict(self.report_response)


@pytest.fixture
def fake_client() -> FakeAnalyticsClient:
    return FakeAnalyticsClient()


@pytest.fixture
def sales_response() -> dict[str, Any]:
    return {
        "isComplex": True,
        "prompt": "Top clients and therapy areas by sales",
        "narrative": "Sales are concentrated in a few accounts.",
        "results": [
            {"dataType": "client", "Client": "Acme", "total_amount": 500},
            {"dataType": "client", "Client": "Beta", "total_amount": 700},
            {"dataType": "therapyArea", "TherapyArea": "Oncology", "total_amount": 900},
        ],
        "visualizations": [
            {"type": "table", "title": "Clients", "data": [{"Client": "Acme", "total_amount": 500}]},
            {"type": "table", "title": "Therapy areas", "data": [{"TherapyArea": "Oncology", "total_amount": 900}]},
        ],
        "insights": [
            {"title": "Beta leads", "description": "Beta has the highest client sales."},
            {"title": "Acme trails", "description": "Acme is second."},
            {"title": "Oncology dominates", "description": "Oncology is the largest therapy area."},
        ],
    }
