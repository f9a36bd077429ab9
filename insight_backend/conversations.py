from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from insight_backend.query_manager import QueryManager
from insight_backend.report_models import Report


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class Conversation:
    """Messages and reports of one chat; reports live only as long as the conversation."""

    def __init__(self, conversation_id: str, manager: QueryManager, dataset_id: str | None = None) -> None:
        self.conversation_id = conversation_id
        self.manager = manager
        self.dataset_id = dataset_id
        self.dataset_name: str | None = None
        self.messages: list[dict[str, Any]] = []
        self.reports: list[dict[str, Any]] = []

    def add_message(self, role: str, content: str, **data: Any) -> dict[str, Any]:
        message = {"role": role, "content": content, "timestamp": _utc_now_iso(), **data}
        self.messages.append(message)
        return message

    def add_report(self, report: Report) -> None:
        self.reports.append({"id": report.id, "messageIndex": len(self.messages) - 1, "report": report})

    def get_report(self, report_id: str) -> Report | None:
        for entry in self.reports:
            if entry["id"] == report_id:
                return entry["report"]
        return None

    def list_reports(self) -> list[Report]:
        return [entry["report"] for entry in self.reports]

    def history(self) -> list[dict[str, str]]:
        return [{"role": message["role"], "content": message["content"]} for message in self.messages]

    def clear(self) -> None:
        self.manager.clear()
        self.messages.clear()
        self.reports.clear()


class ConversationStore:
    # In-memory only; conversations disappear with the process.
    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    def create(self, manager: QueryManager, dataset_id: str | None = None) -> Conversation:
        conversation_id = f"conv_{uuid.uuid4().hex[:8]}"
        conversation = Conversation(conversation_id, manager, dataset_id=dataset_id)
        self._conversations[conversation_id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def delete(self, conversation_id: str) -> bool:
        conversation = self._conversations.pop(conversation_id, None)
        if conversation is None:
            return False
        conversation.clear()
        return True
