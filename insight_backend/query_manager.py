from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from insight_backend.config import REPORT_KEYWORDS
from insight_backend.report_assembler import ReportAssembler
from insight_backend.report_models import Report
from insight_backend.upstream_client import (
    QueryExecutionService,
    ReportGenerationService,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)


def should_generate_report(query: str) -> bool:
    lowered = (query or "").lower()
    return any(keyword in lowered for keyword in REPORT_KEYWORDS)


@dataclass(frozen=True)
class QueryOutcome:
    ticket: int
    report: Report | None = None
    error: str | None = None
    stale: bool = False
    retries: int = 0


class QueryManager:
    """
    Runs one query at a time per conversation with last-query-wins semantics.

    Every run takes a ticket; a response that comes back after a newer
    ticket was issued (or after clear()) is discarded instead of assembled.
    """

    def __init__(
        self,
        query_service: QueryExecutionService,
        report_service: ReportGenerationService | None = None,
        assembler: ReportAssembler | None = None,
    ) -> None:
        self.query_service = query_service
        self.report_service = report_service
        self.assembler = assembler or ReportAssembler()
        self._lock = threading.Lock()
        self._latest_ticket = 0

    def begin(self) -> int:
        with self._lock:
            self._latest_ticket += 1
            return self._latest_ticket

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest_ticket

    def clear(self) -> None:
        self.begin()

    def accept(self, ticket: int, commit: Callable[[], None]) -> bool:
        """Run commit only while ticket is still the latest; it must not call begin()."""
        with self._lock:
            if ticket != self._latest_ticket:
                return False
            commit()
            return True

    def _fetch(self, query: str, dataset_id: str | None, history: list[dict[str, Any]]) -> dict[str, Any]:
        if self.report_service is not None and should_generate_report(query):
            try:
                return self.report_service.generate_report(query, dataset_id, history)
            except UpstreamServiceError as exc:
                logger.info("Report generation failed, falling back to regular query: %s", exc)
        return self.query_service.send_query(query, history, dataset_id)

    def run(
        self, query: str, dataset_id: str | None, history: list[dict[str, Any]] | None = None
    ) -> QueryOutcome:
        ticket = self.begin()
        try:
            response = self._fetch(query, dataset_id, list(history or []))
        except UpstreamServiceError as exc:
            logger.warning("Query failed for dataset %s: %s", dataset_id, exc)
            if not self.is_current(ticket):
                return QueryOutcome(ticket=ticket, stale=True)
            return QueryOutcome(ticket=ticket, error=str(exc) or "An error occurred while processing your query.")

        if not self.is_current(ticket):
            logger.info("Discarding superseded response for ticket %d", ticket)
            return QueryOutcome(ticket=ticket, stale=True)

        report = self.assembler.assemble(response, query, dataset_id)
        if not self.is_current(ticket):
            logger.info("Discarding report assembled for superseded ticket %d", ticket)
            return QueryOutcome(ticket=ticket, stale=True)
        retries = response.get("retries") if isinstance(response, dict) else 0
        return QueryOutcome(ticket=ticket, report=report, retries=retries if isinstance(retries, int) else 0)
