"""SQLAlchemy ORM models for the studio assistant state database.

This module defines conversation persistence (conversations and their
messages, with proposed actions stored as JSON) and the small key/value
table behind session flags. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ConversationRecord(Base):
    """Persistent conversation.

    Attributes:
        id: UUID primary key (same as the runtime conversation ID).
        title: Display title.
        is_active: Soft delete flag (False = archived).
        created_at: ISO8601 creation timestamp.
        updated_at: ISO8601 last-activity timestamp, drives recency grouping.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_active_updated", "is_active", "updated_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    title: Mapped[str] = mapped_column(
        String(255), nullable=False, default="New Conversation"
    )
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    messages: Mapped[list["MessageRecord"]] = relationship(
        "MessageRecord",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="MessageRecord.sequence",
    )

    def __repr__(self) -> str:
        return f"<ConversationRecord(id={self.id!r}, title={self.title!r})>"


class MessageRecord(Base):
    """Persistent conversation message.

    Attributes:
        id: Message ID (same as the runtime message ID).
        conversation_id: FK to ConversationRecord.
        role: 'user' or 'assistant'.
        status: 'streaming', 'complete' or 'error'.
        content: Message text.
        actions_json: JSON array of proposed actions with their status/result.
        sequence: Ordering within the conversation (monotonically increasing).
        created_at: ISO8601 message timestamp.
    """

    __tablename__ = "conversation_messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "sequence", name="uq_convmsg_conv_seq"),
        Index("ix_convmsg_conv_seq", "conversation_id", "sequence"),
    )

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=generate_uuid
    )
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="complete"
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    actions_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    conversation: Mapped["ConversationRecord"] = relationship(
        "ConversationRecord", back_populates="messages"
    )

    def __repr__(self) -> str:
        return f"<MessageRecord(id={self.id!r}, role={self.role!r}, seq={self.sequence})>"


class SessionFlagRecord(Base):
    """Key/value session flag (sidebar open, floating chat resume, etc.).

    Attributes:
        key: Flag name.
        value: Flag value serialized as a string.
        updated_at: ISO8601 timestamp of the last write.
    """

    __tablename__ = "session_flags"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<SessionFlagRecord(key={self.key!r}, value={self.value!r})>"
