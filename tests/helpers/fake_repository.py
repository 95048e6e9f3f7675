"""In-memory stand-ins for the content repository and the assistant.

FakeContentRepository understands the exact-ID and draft/published
lookups the core issues; any other query returns ``query_results``.
Every call is recorded so tests can assert on traffic.
"""

import asyncio
import copy
from typing import Any, Optional
from uuid import uuid4

from src.orchestrator.models.conversation import Message
from src.services.content_repository import ContentRepository, ContentRepositoryError


class FakeContentRepository(ContentRepository):
    """Dict-backed ContentRepository.

    Attributes:
        documents: Stored documents keyed by ``_id``.
        query_results: Returned for any query that is not an ID lookup.
        calls: ``(method, args)`` tuples in call order.
        error: When set, every call raises it.
        gate: When set, every fetch waits for this event first.
    """

    def __init__(self, documents: Optional[list[dict[str, Any]]] = None) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        for document in documents or []:
            self.documents[document["_id"]] = copy.deepcopy(document)
        self.query_results: Any = []
        self.calls: list[tuple[str, tuple]] = []
        self.error: Optional[ContentRepositoryError] = None
        self.gate: Optional[asyncio.Event] = None

    def add(self, document: dict[str, Any]) -> None:
        self.documents[document["_id"]] = copy.deepcopy(document)

    def calls_to(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

    def _project(self, document: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        return copy.deepcopy(document) if document is not None else None

    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None) -> Any:
        await self._enter("fetch", query, params)
        params = params or {}
        if query.startswith("*[_id == $id || _id == $draftId][0]"):
            document = self.documents.get(params["draftId"]) or self.documents.get(params["id"])
            return self._project(document)
        if query.startswith("*[_id == $id][0]"):
            return self._project(self.documents.get(params["id"]))
        return copy.deepcopy(self.query_results)

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        await self._enter("create", document)
        stored = copy.deepcopy(document)
        stored.setdefault("_id", uuid4().hex[:10])
        if stored["_id"] in self.documents:
            raise ContentRepositoryError("Document already exists", status_code=409)
        self.documents[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def create_or_replace(self, document: dict[str, Any]) -> dict[str, Any]:
        await self._enter("create_or_replace", document)
        self.documents[document["_id"]] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def patch(
        self,
        document_id: str,
        fields: dict[str, Any],
        unset: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        await self._enter("patch", document_id, fields, unset)
        document = self.documents.get(document_id)
        if document is None:
            raise ContentRepositoryError(f"Document {document_id} not found", status_code=404)
        document.update(copy.deepcopy(fields))
        for key in unset or []:
            document.pop(key, None)
        return copy.deepcopy(document)

    async def delete(self, document_id: str) -> dict[str, Any]:
        await self._enter("delete", document_id)
        self.documents.pop(document_id, None)
        return {"_id": document_id}


class FakeResponder:
    """AssistantResponder returning canned replies in order.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.requests: list[tuple[str, list[Message]]] = []

    async def respond(self, conversation_id: str, history: list[Message]) -> str:
        self.requests.append((conversation_id, list(history)))
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply
