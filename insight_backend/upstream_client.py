"""
Clients for the upstream query-execution and report-generation services.

Both services answer with a raw response mapping (results, visualizations,
narrative, insights, isComplex, prompt). Transport failures and
`success: false` payloads surface as UpstreamServiceError.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from insight_backend.config import UPSTREAM_API_BASE_URL, UPSTREAM_API_TOKEN, UPSTREAM_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class UpstreamServiceError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueryExecutionService(Protocol):
    def send_query(
        self, query: str, conversation_history: list[dict[str, Any]], dataset_id: str | None
    ) -> dict[str, Any]: ...


class ReportGenerationService(Protocol):
    def generate_report(
        self,
        query: str,
        dataset_id: str | None,
        conversation_history: list[dict[str, Any]],
        report_type: str = "standard",
    ) -> dict[str, Any]: ...


class HttpAnalyticsClient:
    """requests-based client implementing both upstream services."""

    def __init__(
        self,
        base_url: str = UPSTREAM_API_BASE_URL,
        token: str = UPSTREAM_API_TOKEN,
        timeout: int = UPSTREAM_REQUEST_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.post(url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamServiceError(f"Request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            detail = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("error", detail)
            raise UpstreamServiceError(f"{response.status_code}: {detail}", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamServiceError(f"Upstream returned non-JSON body from {url}") from exc
        if not isinstance(payload, dict):
            raise UpstreamServiceError(f"Upstream returned {type(payload).__name__}, expected an object")
        return payload

    def send_query(
        self, query: str, conversation_history: list[dict[str, Any]], dataset_id: str | None
    ) -> dict[str, Any]:
        if not dataset_id:
            logger.warning("Sending query without a dataset id")
        payload = self._post(
            "query",
            {"userQuery": query, "conversationHistory": conversation_history, "datasetId": dataset_id},
        )
        if dataset_id and not payload.get("datasetId"):
            payload["datasetId"] = dataset_id
        return payload

    def generate_report(
        self,
        query: str,
        dataset_id: str | None,
        conversation_history: list[dict[str, Any]],
        report_type: str = "standard",
    ) -> dict[str, Any]:
        payload = self._post(
            "reports",
            {
                "query": query,
                "datasetId": dataset_id,
                "reportType": report_type,
                "conversationHistory": conversation_history,
            },
        )
        if not payload.get("success"):
            raise UpstreamServiceError(str(payload.get("error") or "Failed to generate report"))
        report = payload.get("report")
        if not isinstance(report, dict):
            raise UpstreamServiceError("Report service response is missing the report object")
        logger.info("Report generated upstream: %s", payload.get("reportId"))
        return report
