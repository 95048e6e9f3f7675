"""Pydantic schemas for API request/response validation.

This module defines the data contracts for the studio assistant REST API:
conversations and messages, action handles, document context, and
session flags.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.orchestrator.actions.handle import ActionHandle
from src.orchestrator.context.navigation import NavigationMode, NavigationPlan
from src.orchestrator.models.conversation import Conversation, Message
from src.orchestrator.models.document import DocumentContext
from src.services.conversation_history import ConversationPage


# Action schemas


class ActionResultResponse(BaseModel):
    """Outcome recorded on a completed or failed action."""

    success: bool
    message: str
    document_id: Optional[str] = None
    data: Any = None


class ActionResponse(BaseModel):
    """Response schema for an action and its gate decision."""

    id: str
    type: str
    description: str
    status: str
    payload: dict[str, Any]
    result: Optional[ActionResultResponse] = None
    error: Optional[str] = None
    decision: str
    is_destructive: bool
    auto_executed: bool

    @classmethod
    def from_handle(cls, handle: ActionHandle) -> "ActionResponse":
        action = handle.action
        result = None
        if action.result is not None:
            result = ActionResultResponse(**action.result.model_dump())
        return cls(
            id=action.id,
            type=action.type.value,
            description=action.description,
            status=action.status.value,
            payload=action.payload.model_dump(exclude_none=True),
            result=result,
            error=action.error,
            decision=handle.decision.value,
            is_destructive=handle.is_destructive,
            auto_executed=action.auto_executed,
        )


class ActionPreviewResponse(BaseModel):
    """What an action would do, without running it."""

    action_id: str
    summary: str
    preview: dict[str, Any]


# Conversation schemas


class MessageResponse(BaseModel):
    """Response schema for one message."""

    id: str
    role: str
    content: str
    timestamp: datetime
    status: str
    actions: list[ActionResponse] = []

    @classmethod
    def from_message(cls, message: Message, handles: list[ActionHandle]) -> "MessageResponse":
        return cls(
            id=message.id,
            role=message.role.value,
            content=message.content,
            timestamp=message.timestamp,
            status=message.status.value,
            actions=[ActionResponse.from_handle(h) for h in handles],
        )


class ConversationSummary(BaseModel):
    """Conversation entry in the history sidebar."""

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSummary":
        return cls(
            id=conversation.id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            message_count=len(conversation.messages),
        )


class ConversationGroupResponse(BaseModel):
    """One recency bucket."""

    period: str
    label: str
    conversations: list[ConversationSummary]


class ConversationListResponse(BaseModel):
    """Grouped, paginated conversation list."""

    groups: list[ConversationGroupResponse]
    has_more: bool
    total_count: int
    visible_count: int
    active_conversation_id: Optional[str] = None

    @classmethod
    def from_page(
        cls, page: ConversationPage, active_conversation_id: Optional[str]
    ) -> "ConversationListResponse":
        return cls(
            groups=[
                ConversationGroupResponse(
                    period=group.period.value,
                    label=group.label,
                    conversations=[
                        ConversationSummary.from_conversation(c) for c in group.conversations
                    ],
                )
                for group in page.groups
            ],
            has_more=page.has_more,
            total_count=page.total_count,
            visible_count=page.visible_count,
            active_conversation_id=active_conversation_id,
        )


class ConversationDetailResponse(BaseModel):
    """Full conversation with messages and actions."""

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    archived: bool
    messages: list[MessageResponse]
    error: Optional[str] = None


class CreateConversationRequest(BaseModel):
    """Optional request body for creating a conversation."""

    title: Optional[str] = Field(None, max_length=200)


class RenameConversationRequest(BaseModel):
    """Request to rename a conversation."""

    title: str = Field(..., min_length=1, max_length=200)


class SendMessageRequest(BaseModel):
    """Request for sending a user message."""

    content: str = Field(..., min_length=1, description="User message text")


class SendMessageResponse(BaseModel):
    """Assistant reply plus the conversation-wide error, if any."""

    conversation_id: str
    message: MessageResponse
    error: Optional[str] = None


# Document context schemas


class DocumentContextResponse(BaseModel):
    """A document the conversation concerns."""

    document_id: str
    document_type: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    is_loading: bool = False

    @classmethod
    def from_context(cls, context: DocumentContext) -> "DocumentContextResponse":
        return cls(
            document_id=context.document_id,
            document_type=context.document_type,
            slug=context.slug,
            name=context.name,
            is_loading=context.is_loading,
        )


class ContextResponse(BaseModel):
    """Current document context of the active conversation."""

    conversation_id: Optional[str] = None
    generation: int
    has_manual_selection: bool
    documents: list[DocumentContextResponse]


class DocumentSelection(BaseModel):
    """A document chosen in the picker."""

    document_id: str = Field(..., min_length=1)
    document_type: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None

    def to_context(self) -> DocumentContext:
        return DocumentContext(
            document_id=self.document_id,
            document_type=self.document_type,
            slug=self.slug,
            name=self.name,
        )


class ManualSelectionRequest(BaseModel):
    """Replace the derived context with an explicit selection."""

    documents: list[DocumentSelection]


class NavigationRequest(BaseModel):
    """Continue the conversation in another editing surface."""

    mode: NavigationMode
    document_id: Optional[str] = None


class NavigationResponse(BaseModel):
    """Destination URL, or the candidates the user must choose from."""

    mode: str
    url: Optional[str] = None
    needs_disambiguation: bool
    candidates: list[DocumentContextResponse] = []

    @classmethod
    def from_plan(cls, plan: NavigationPlan) -> "NavigationResponse":
        return cls(
            mode=plan.mode.value,
            url=plan.url,
            needs_disambiguation=plan.needs_disambiguation,
            candidates=[DocumentContextResponse.from_context(c) for c in plan.candidates],
        )


class DocumentSearchResponse(BaseModel):
    """Picker search results."""

    query: str
    results: list[DocumentContextResponse]


# Session flag schemas


class SessionFlagsResponse(BaseModel):
    """All stored session flags."""

    flags: dict[str, str]


class SessionFlagUpdate(BaseModel):
    """New value for a session flag."""

    value: bool | str


class PendingConversationResponse(BaseModel):
    """Conversation queued for the floating assistant, consumed on read."""

    conversation_id: Optional[str] = None
