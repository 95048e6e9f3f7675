"""Conversation and message models.

A Conversation is an ordered list of Messages. Assistant messages may
carry the Actions they proposed; the same Action objects are mutated in
place by the executor so every reader sees one source of truth.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.orchestrator.models.action import Action

DEFAULT_CONVERSATION_TITLE = "New Conversation"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class MessageRole(str, Enum):
    """Author of a conversation turn."""

    user = "user"
    assistant = "assistant"


class MessageStatus(str, Enum):
    """Whether a message's text is still arriving."""

    streaming = "streaming"
    complete = "complete"
    error = "error"


class Message(BaseModel):
    """One turn in a conversation.

    Attributes:
        id: Unique message ID.
        role: Author of the turn.
        content: Message text.
        timestamp: When the message was created.
        status: Streaming state of the text.
        actions: Ordered actions proposed by this message.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: f"msg-{uuid4().hex[:12]}")
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
    status: MessageStatus = MessageStatus.complete
    actions: list[Action] = Field(default_factory=list)


class Conversation(BaseModel):
    """A conversation with the assistant.

    Attributes:
        id: Unique conversation ID.
        title: Display title.
        messages: Ordered message list.
        created_at: Creation time.
        updated_at: Last activity time, used for recency grouping.
        archived: Soft-delete flag.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = DEFAULT_CONVERSATION_TITLE
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    archived: bool = False

    def touch(self, when: Optional[datetime] = None) -> None:
        """Bump the last-activity timestamp."""
        self.updated_at = when or utc_now()

    def find_action(self, action_id: str) -> Optional[Action]:
        """Look up an action by ID across all messages."""
        for message in self.messages:
            for action in message.actions:
                if action.id == action_id:
                    return action
        return None
