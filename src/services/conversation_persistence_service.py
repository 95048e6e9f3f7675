"""Persistence service for conversations and messages.

Thin layer between the session manager/API routes and the SQLAlchemy
models. Messages are upserted by ID, so an assistant message is saved
again whenever one of its actions changes status.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, ContextManager, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from src.db.connection import get_db_context
from src.db.models import (
    ConversationRecord,
    MessageRecord,
    utc_now_iso,
)
from src.orchestrator.models.action import Action
from src.orchestrator.models.conversation import (
    DEFAULT_CONVERSATION_TITLE,
    Conversation,
    Message,
)

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _load_actions(message_id: str, actions_json: Optional[str]) -> list[Action]:
    """Decode stored actions, skipping any that no longer validate."""
    if not actions_json:
        return []
    try:
        raw = json.loads(actions_json)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Corrupted actions_json for message %s", message_id)
        return []

    actions = []
    for item in raw if isinstance(raw, list) else []:
        try:
            actions.append(Action.model_validate(item))
        except PydanticValidationError as e:
            logger.warning("Skipping invalid stored action in message %s: %s", message_id, e)
    return actions


class ConversationPersistenceService:
    """CRUD operations for persistent conversations and messages.

    Args:
        db: SQLAlchemy session (sync).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def create_conversation(self, conversation: Conversation) -> ConversationRecord:
        """Insert a conversation row.

        Args:
            conversation: Runtime conversation to persist (messages excluded).

        Returns:
            The created ConversationRecord.
        """
        record = ConversationRecord(
            id=conversation.id,
            title=conversation.title or DEFAULT_CONVERSATION_TITLE,
            is_active=not conversation.archived,
            created_at=conversation.created_at.isoformat(),
            updated_at=conversation.updated_at.isoformat(),
        )
        self._db.add(record)
        self._db.commit()
        return record

    def save_message(self, conversation_id: str, message: Message) -> MessageRecord:
        """Insert or update a message, keeping its original sequence.

        Args:
            conversation_id: Parent conversation ID.
            message: Runtime message, including its actions.

        Returns:
            The stored MessageRecord.
        """
        actions_json = (
            json.dumps([a.model_dump(mode="json", by_alias=True) for a in message.actions])
            if message.actions
            else None
        )

        record = self._db.get(MessageRecord, message.id)
        if record is None:
            # SELECT+INSERT is safe under SQLite's single-writer semantics
            max_seq = (
                self._db.query(func.max(MessageRecord.sequence))
                .filter_by(conversation_id=conversation_id)
                .scalar()
            )
            record = MessageRecord(
                id=message.id,
                conversation_id=conversation_id,
                role=message.role.value,
                sequence=(max_seq or 0) + 1,
                created_at=message.timestamp.isoformat(),
            )
            self._db.add(record)

        record.status = message.status.value
        record.content = message.content
        record.actions_json = actions_json

        conversation = self._db.get(ConversationRecord, conversation_id)
        if conversation:
            conversation.updated_at = utc_now_iso()

        self._db.commit()
        return record

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        """Remove one message from a conversation.

        Returns:
            True if the message existed and was deleted.
        """
        record = self._db.get(MessageRecord, message_id)
        if record is None or record.conversation_id != conversation_id:
            return False
        self._db.delete(record)
        self._db.commit()
        return True

    def list_conversations(self, active_only: bool = True) -> list[dict[str, Any]]:
        """List conversations with message counts, most recent first.

        Args:
            active_only: If True, exclude archived conversations.

        Returns:
            List of conversation summary dicts (no messages).
        """
        query = self._db.query(
            ConversationRecord.id,
            ConversationRecord.title,
            ConversationRecord.created_at,
            ConversationRecord.updated_at,
            func.count(MessageRecord.id).label("message_count"),
        ).outerjoin(MessageRecord).group_by(ConversationRecord.id)

        if active_only:
            query = query.filter(ConversationRecord.is_active == True)  # noqa: E712

        query = query.order_by(
            ConversationRecord.updated_at.desc(),
            ConversationRecord.created_at.desc(),
        )

        return [
            {
                "id": row[0],
                "title": row[1],
                "created_at": row[2],
                "updated_at": row[3],
                "message_count": row[4],
            }
            for row in query.all()
        ]

    def load_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Load a conversation with all of its messages and actions.

        Returns:
            The runtime Conversation, or None if not found.
        """
        record = self._db.get(ConversationRecord, conversation_id)
        if record is None:
            return None

        messages = [
            Message(
                id=m.id,
                role=m.role,
                content=m.content,
                timestamp=_parse_timestamp(m.created_at),
                status=m.status,
                actions=_load_actions(m.id, m.actions_json),
            )
            for m in record.messages
        ]
        return Conversation(
            id=record.id,
            title=record.title,
            messages=messages,
            created_at=_parse_timestamp(record.created_at),
            updated_at=_parse_timestamp(record.updated_at),
            archived=not record.is_active,
        )

    def load_conversations(self, active_only: bool = True) -> list[Conversation]:
        """Load every conversation with its messages, most recent first."""
        conversations = []
        for summary in self.list_conversations(active_only=active_only):
            conversation = self.load_conversation(summary["id"])
            if conversation is not None:
                conversations.append(conversation)
        return conversations

    def update_title(self, conversation_id: str, title: str) -> bool:
        """Set the conversation title.

        Returns:
            True if found and updated, False if not found.
        """
        record = self._db.get(ConversationRecord, conversation_id)
        if record is None:
            return False
        record.title = title
        record.updated_at = utc_now_iso()
        self._db.commit()
        return True

    def archive_conversation(self, conversation_id: str) -> bool:
        """Soft-delete a conversation (set is_active = False).

        Returns:
            True if found and archived, False if not found.
        """
        record = self._db.get(ConversationRecord, conversation_id)
        if record is None:
            return False
        record.is_active = False
        record.updated_at = utc_now_iso()
        self._db.commit()
        return True

    def restore_conversation(self, conversation_id: str) -> bool:
        """Undo an archive (set is_active = True).

        Returns:
            True if found and restored, False if not found.
        """
        record = self._db.get(ConversationRecord, conversation_id)
        if record is None:
            return False
        record.is_active = True
        record.updated_at = utc_now_iso()
        self._db.commit()
        return True


class ScopedConversationStore:
    """ConversationStore that opens a fresh DB session for every write.

    The session manager outlives any request, so it cannot hold a
    request's session. Each call runs in its own ``session_factory()``
    context on the caller's thread.

    Args:
        session_factory: Context manager yielding a Session. Defaults to
            ``get_db_context``.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], ContextManager[Session]]] = None,
    ) -> None:
        self._session_factory = session_factory or get_db_context

    def _run(self, operation: Callable[[ConversationPersistenceService], Any]) -> Any:
        with self._session_factory() as db:
            return operation(ConversationPersistenceService(db))

    def create_conversation(self, conversation: Conversation) -> None:
        self._run(lambda s: s.create_conversation(conversation))

    def save_message(self, conversation_id: str, message: Message) -> None:
        self._run(lambda s: s.save_message(conversation_id, message))

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        return self._run(lambda s: s.delete_message(conversation_id, message_id))

    def update_title(self, conversation_id: str, title: str) -> bool:
        return self._run(lambda s: s.update_title(conversation_id, title))

    def archive_conversation(self, conversation_id: str) -> bool:
        return self._run(lambda s: s.archive_conversation(conversation_id))

    def restore_conversation(self, conversation_id: str) -> bool:
        return self._run(lambda s: s.restore_conversation(conversation_id))
