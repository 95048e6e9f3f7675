"""Action models for assistant-proposed content operations.

An Action is a structured proposal to operate on the content repository.
It has its own lifecycle, independent of the message that proposed it:

    pending -> executing -> completed/failed
    pending -> cancelled
    executing -> cancelled

Field names are snake_case in Python and camelCase on the wire, matching
the shape the assistant emits and the repository stores.
"""

from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)


class ActionType(str, Enum):
    """Operation kinds the assistant can propose."""

    create = "create"
    update = "update"
    delete = "delete"
    query = "query"
    navigate = "navigate"
    explain = "explain"


class ActionStatus(str, Enum):
    """Lifecycle status values for actions.

    Lifecycle: pending -> executing -> completed/failed
               pending/executing -> cancelled
    """

    pending = "pending"
    executing = "executing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset(
    {ActionStatus.completed, ActionStatus.failed, ActionStatus.cancelled}
)

# Older stored conversations recorded successful actions as "success".
_LEGACY_STATUS_ALIASES = {"success": ActionStatus.completed.value}


def generate_action_id() -> str:
    """Generate a unique action identifier."""
    return f"action-{uuid4().hex[:12]}"


class ActionPayload(BaseModel):
    """Operation parameters for an action.

    Attributes:
        document_id: Target document ID (draft or published form).
        document_type: Target document type.
        field_values: Field map for create/update actions.
        query: Query expression for query actions.
        params: Query parameters.
        path: Target path for navigate actions.
        explanation: Text for explain actions.
        operation: Named field operation (e.g. "unpublish").
        unset: Field paths to remove from the document.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    document_id: Optional[str] = Field(
        default=None,
        alias="documentId",
        description="Target document ID",
    )
    document_type: Optional[str] = Field(
        default=None,
        alias="documentType",
        description="Target document type",
    )
    field_values: Optional[dict[str, Any]] = Field(
        default=None,
        alias="fields",
        description="Field values to write for create/update",
    )
    query: Optional[str] = Field(
        default=None,
        description="Query expression for query actions",
    )
    params: Optional[dict[str, Any]] = Field(
        default=None,
        description="Parameters referenced by the query",
    )
    path: Optional[str] = Field(
        default=None,
        description="Target path for navigate actions",
    )
    explanation: Optional[str] = Field(
        default=None,
        description="Informational text for explain actions",
    )
    operation: Optional[str] = Field(
        default=None,
        description="Named field operation, e.g. publish or unpublish",
    )
    unset: list[str] = Field(
        default_factory=list,
        description="Field paths to remove from the document",
    )


class ActionResult(BaseModel):
    """Outcome of an execution attempt.

    Attributes:
        success: Whether the repository call succeeded.
        message: Human-readable summary.
        document_id: Affected document ID, when one is known.
        data: Raw repository response; shape depends on the action type.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable summary")
    document_id: Optional[str] = Field(
        default=None,
        alias="documentId",
        description="Affected document ID",
    )
    data: Any = Field(
        default=None,
        description="Raw repository response",
    )


class Action(BaseModel):
    """A proposed operation on the content repository.

    ``result`` and ``error`` are mutually exclusive and both absent while
    the action is pending or executing. ``error`` is only present when the
    action has failed.

    Attributes:
        id: Unique identifier within a conversation.
        type: Operation kind.
        description: Short human-readable summary shown on the action card.
        status: Current lifecycle status.
        payload: Operation parameters.
        result: Outcome of a completed execution.
        error: Failure description for a failed execution.
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str = Field(default_factory=generate_action_id)
    type: ActionType
    description: str = ""
    status: ActionStatus = ActionStatus.pending
    payload: ActionPayload = Field(default_factory=ActionPayload)
    result: Optional[ActionResult] = None
    error: Optional[str] = None

    _auto_executed: bool = PrivateAttr(default=False)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, value: Any) -> Any:
        """Map legacy stored status names onto the current enum."""
        if isinstance(value, str):
            return _LEGACY_STATUS_ALIASES.get(value, value)
        return value

    @model_validator(mode="after")
    def check_outcome_fields(self) -> "Action":
        """Enforce result/error exclusivity for the current status."""
        if self.result is not None and self.error is not None:
            raise ValueError("Action cannot carry both a result and an error")
        if self.status in (ActionStatus.pending, ActionStatus.executing):
            if self.result is not None or self.error is not None:
                raise ValueError(
                    f"Action in status '{self.status.value}' cannot carry a result or error"
                )
        if self.error is not None and self.status != ActionStatus.failed:
            raise ValueError("Only failed actions may carry an error")
        return self

    @property
    def is_terminal(self) -> bool:
        """Whether the action has reached a terminal status."""
        return self.status in TERMINAL_STATUSES

    @property
    def auto_executed(self) -> bool:
        """Whether automatic execution has already been triggered."""
        return self._auto_executed

    def mark_auto_executed(self) -> bool:
        """Set the auto-execution marker.

        Returns:
            True if the marker was newly set, False if it was already set.
        """
        if self._auto_executed:
            return False
        self._auto_executed = True
        return True
