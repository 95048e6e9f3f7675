"""Tests for ConversationRecord, MessageRecord and SessionFlagRecord."""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.db.models import (
    ConversationRecord,
    MessageRecord,
    SessionFlagRecord,
    generate_uuid,
)


def _make_conversation(db_session: Session, **kwargs) -> ConversationRecord:
    record = ConversationRecord(id=generate_uuid(), **kwargs)
    db_session.add(record)
    db_session.commit()
    return record


class TestConversationRecord:
    """ConversationRecord defaults and soft delete."""

    def test_defaults(self, db_session: Session):
        record = _make_conversation(db_session)

        assert record.title == "New Conversation"
        assert record.is_active is True
        assert record.created_at is not None
        assert record.updated_at is not None

    def test_soft_delete(self, db_session: Session):
        record = _make_conversation(db_session)

        record.is_active = False
        db_session.commit()

        active = db_session.query(ConversationRecord).filter_by(is_active=True).all()
        assert active == []


class TestMessageRecord:
    """MessageRecord ordering, uniqueness and cascade."""

    def test_messages_ordered_by_sequence(self, db_session: Session):
        conversation = _make_conversation(db_session)
        for sequence in (2, 0, 1):
            db_session.add(
                MessageRecord(
                    conversation_id=conversation.id,
                    role="user",
                    content=f"msg {sequence}",
                    sequence=sequence,
                )
            )
        db_session.commit()
        db_session.refresh(conversation)

        assert [m.content for m in conversation.messages] == ["msg 0", "msg 1", "msg 2"]
        assert conversation.messages[0].status == "complete"
        assert conversation.messages[0].actions_json is None

    def test_sequence_unique_per_conversation(self, db_session: Session):
        conversation = _make_conversation(db_session)
        db_session.add(MessageRecord(conversation_id=conversation.id, role="user", sequence=0))
        db_session.add(MessageRecord(conversation_id=conversation.id, role="user", sequence=0))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_cascade_delete(self, db_session: Session):
        conversation = _make_conversation(db_session)
        conversation.messages.append(MessageRecord(role="user", content="hi", sequence=0))
        db_session.commit()

        db_session.delete(conversation)
        db_session.commit()

        assert db_session.query(MessageRecord).count() == 0


class TestSessionFlagRecord:
    def test_key_is_primary(self, db_session: Session):
        db_session.add(SessionFlagRecord(key="assistant-sidebar-open", value="true"))
        db_session.commit()

        record = db_session.get(SessionFlagRecord, "assistant-sidebar-open")
        assert record.value == "true"
        assert record.updated_at is not None
