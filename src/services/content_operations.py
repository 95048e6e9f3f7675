"""Content operations behind assistant actions.

Maps each action type onto repository calls and shapes the outcome as an
ActionResult. Missing parameters produce a failure result; repository
errors propagate to the caller, which records them on the action.
"""

import logging
from typing import Any, Optional

from src.orchestrator.actions.parser import validate_action
from src.orchestrator.models.action import Action, ActionPayload, ActionResult, ActionType
from src.services.content_repository import (
    ContentRepository,
    strip_draft_prefix,
    to_draft_id,
)

logger = logging.getLogger(__name__)

PUBLISH_OPERATION = "publish"
UNPUBLISH_OPERATION = "unpublish"

REPOSITORY_ACTION_TYPES = frozenset(
    {ActionType.create, ActionType.update, ActionType.delete, ActionType.query}
)

# System fields that must not be copied between draft and published variants
_SYSTEM_FIELDS = ("_id", "_rev", "_createdAt", "_updatedAt")


def _copy_without_system_fields(document: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in document.items() if k not in _SYSTEM_FIELDS}


class ContentOperations:
    """Executes actions against a content repository.

    Example:
        ops = ContentOperations(repository)
        result = await ops.execute_action(action)
        if result.success:
            ...
    """

    def __init__(self, repository: Optional[ContentRepository]) -> None:
        self._repository = repository

    @property
    def repository(self) -> Optional[ContentRepository]:
        """The underlying repository client."""
        return self._repository

    async def execute_action(self, action: Action) -> ActionResult:
        """Run one action against the repository.

        Args:
            action: The action to run. Its status is not touched here.

        Returns:
            ActionResult describing the outcome.

        Raises:
            ContentRepositoryError: If a repository call fails.
        """
        problems = validate_action(action)
        if problems:
            return ActionResult(success=False, message="; ".join(problems))
        if self._repository is None and action.type in REPOSITORY_ACTION_TYPES:
            return ActionResult(success=False, message="Content repository is not configured")

        payload = action.payload
        if action.type == ActionType.create:
            return await self.create_document(payload)
        if action.type == ActionType.update:
            operation = (payload.operation or "").lower()
            if operation == PUBLISH_OPERATION:
                return await self.publish_document(payload.document_id)
            if operation == UNPUBLISH_OPERATION:
                return await self.unpublish_document(payload.document_id)
            return await self.update_document(payload)
        if action.type == ActionType.delete:
            return await self.delete_document(payload)
        if action.type == ActionType.query:
            return await self.query_documents(payload)
        if action.type == ActionType.navigate:
            return self.navigate_to_document(payload)
        if action.type == ActionType.explain:
            return ActionResult(
                success=True,
                message=payload.explanation or "No explanation provided",
            )
        return ActionResult(success=False, message=f"Unknown action type: {action.type}")

    async def create_document(self, payload: ActionPayload) -> ActionResult:
        """Create a document of ``payload.document_type`` with its fields."""
        document: dict[str, Any] = {"_type": payload.document_type}
        document.update(payload.field_values or {})
        if payload.document_id:
            document["_id"] = payload.document_id

        created = await self._repository.create(document)
        return ActionResult(
            success=True,
            document_id=created.get("_id"),
            message=f"Created {payload.document_type} document",
            data=created,
        )

    async def update_document(self, payload: ActionPayload) -> ActionResult:
        """Set (and unset) fields on an existing document."""
        if not payload.field_values and not payload.unset:
            return ActionResult(success=False, message="No fields to update")

        patched = await self._repository.patch(
            payload.document_id,
            payload.field_values or {},
            unset=payload.unset or None,
        )
        return ActionResult(
            success=True,
            document_id=patched.get("_id", payload.document_id),
            message=f"Updated document {payload.document_id}",
            data=patched,
        )

    async def delete_document(self, payload: ActionPayload) -> ActionResult:
        """Delete the target document."""
        await self._repository.delete(payload.document_id)
        return ActionResult(
            success=True,
            document_id=payload.document_id,
            message=f"Deleted document {payload.document_id}",
        )

    async def query_documents(self, payload: ActionPayload) -> ActionResult:
        """Run the payload's query and return the records."""
        results = await self._repository.fetch(payload.query, payload.params)
        if isinstance(results, list):
            count = len(results)
        else:
            count = 0 if results is None else 1
        return ActionResult(
            success=True,
            message=f"Found {count} result(s)",
            data=results,
        )

    def navigate_to_document(self, payload: ActionPayload) -> ActionResult:
        """Return navigation info; the host performs the navigation."""
        return ActionResult(
            success=True,
            document_id=payload.document_id,
            message=f"Navigate to {payload.path or payload.document_id}",
            data={"path": payload.path, "documentId": payload.document_id},
        )

    async def publish_document(self, document_id: str) -> ActionResult:
        """Copy the draft over the published document and drop the draft."""
        draft_id = to_draft_id(document_id)
        published_id = strip_draft_prefix(document_id)

        draft = await self._repository.fetch_exact(draft_id)
        if draft is None:
            return ActionResult(success=False, message=f"Draft document {draft_id} not found")

        document = _copy_without_system_fields(draft)
        document["_id"] = published_id
        await self._repository.create_or_replace(document)
        await self._repository.delete(draft_id)

        logger.info("Published document %s", published_id)
        return ActionResult(
            success=True,
            document_id=published_id,
            message=f"Published document {published_id}",
        )

    async def unpublish_document(self, document_id: str) -> ActionResult:
        """Delete the published document, keeping (or creating) its draft."""
        published_id = strip_draft_prefix(document_id)
        draft_id = to_draft_id(published_id)

        published = await self._repository.fetch_exact(published_id)
        if published is None:
            return ActionResult(
                success=False,
                message=f"Published document {published_id} not found",
            )

        if await self._repository.fetch_exact(draft_id) is None:
            draft = _copy_without_system_fields(published)
            draft["_id"] = draft_id
            await self._repository.create(draft)

        await self._repository.delete(published_id)

        logger.info("Unpublished document %s", published_id)
        return ActionResult(
            success=True,
            document_id=published_id,
            message=f"Unpublished document. Draft preserved at {draft_id}",
        )

    async def preview_action(self, action: Action) -> dict[str, Any]:
        """Describe what an action would do, without doing it.

        Used by the confirmation surface to show current and proposed values.

        Args:
            action: The action to preview.

        Returns:
            Preview dict keyed by ``operation``.

        Raises:
            ContentRepositoryError: If loading the current document fails.
        """
        payload = action.payload
        if action.type == ActionType.create:
            return {
                "operation": "create",
                "documentType": payload.document_type,
                "fields": payload.field_values,
            }
        if action.type == ActionType.update:
            if not payload.document_id:
                return {"operation": "update", "error": "No document ID"}
            current = await self._load_current(payload.document_id)
            return {
                "operation": "update",
                "documentId": payload.document_id,
                "currentValues": current,
                "newValues": payload.field_values,
                "unset": payload.unset,
            }
        if action.type == ActionType.delete:
            if not payload.document_id:
                return {"operation": "delete", "error": "No document ID"}
            document = await self._load_current(payload.document_id)
            return {"operation": "delete", "document": document}
        if action.type == ActionType.query:
            return {"operation": "query", "query": payload.query}
        return {"operation": action.type.value}

    async def _load_current(self, document_id: str) -> Optional[dict[str, Any]]:
        if self._repository is None:
            return None
        return await self._repository.get_document(document_id)
