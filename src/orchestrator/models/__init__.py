"""Pydantic models for the assistant core.

This module exports the action, conversation and document context
models shared by the executor, the resolver and the session manager.
"""

from src.orchestrator.models.action import (
    TERMINAL_STATUSES,
    Action,
    ActionPayload,
    ActionResult,
    ActionStatus,
    ActionType,
    generate_action_id,
)
from src.orchestrator.models.conversation import (
    DEFAULT_CONVERSATION_TITLE,
    Conversation,
    Message,
    MessageRole,
    MessageStatus,
    utc_now,
)
from src.orchestrator.models.document import DocumentContext

__all__ = [
    # Action models
    "Action",
    "ActionPayload",
    "ActionResult",
    "ActionStatus",
    "ActionType",
    "TERMINAL_STATUSES",
    "generate_action_id",
    # Conversation models
    "Conversation",
    "DEFAULT_CONVERSATION_TITLE",
    "Message",
    "MessageRole",
    "MessageStatus",
    "utc_now",
    # Document context
    "DocumentContext",
]
