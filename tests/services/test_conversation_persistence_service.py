"""Tests for ConversationPersistenceService."""

import json
from contextlib import contextmanager
from datetime import UTC, datetime

import pytest
from sqlalchemy.orm import Session

from src.db.models import ConversationRecord, MessageRecord
from src.orchestrator.models.action import (
    Action,
    ActionPayload,
    ActionResult,
    ActionStatus,
    ActionType,
)
from src.orchestrator.models.conversation import (
    Conversation,
    Message,
    MessageRole,
    MessageStatus,
)
from src.services.conversation_persistence_service import (
    ConversationPersistenceService,
    ScopedConversationStore,
)


@pytest.fixture
def svc(db_session: Session):
    """Service under test."""
    return ConversationPersistenceService(db_session)


def _conversation(conversation_id: str = "c1", title: str = "Homepage edits") -> Conversation:
    stamp = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
    return Conversation(id=conversation_id, title=title, created_at=stamp, updated_at=stamp)


def _assistant_with_action() -> Message:
    action = Action(
        type=ActionType.query,
        status=ActionStatus.completed,
        payload=ActionPayload(query="*[_type == 'page']"),
        result=ActionResult(success=True, message="Found 1 result(s)", data=[{"_id": "a"}]),
    )
    return Message(id="m2", role=MessageRole.assistant, content="Here you go", actions=[action])


class TestCreateConversation:
    def test_creates_record(self, svc, db_session):
        record = svc.create_conversation(_conversation())
        assert record.id == "c1"
        assert record.title == "Homepage edits"
        assert record.is_active is True

    def test_archived_conversation_is_inactive(self, svc):
        conversation = _conversation()
        conversation.archived = True
        assert svc.create_conversation(conversation).is_active is False


class TestSaveMessage:
    def test_assigns_sequence(self, svc, db_session):
        svc.create_conversation(_conversation())
        first = svc.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))
        second = svc.save_message("c1", _assistant_with_action())
        assert first.sequence == 1
        assert second.sequence == 2

    def test_upsert_keeps_sequence_and_updates_actions(self, svc, db_session):
        svc.create_conversation(_conversation())
        svc.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))
        message = Message(
            id="m2",
            role=MessageRole.assistant,
            status=MessageStatus.streaming,
            actions=[Action(type=ActionType.delete, payload=ActionPayload(document_id="x"))],
        )
        svc.save_message("c1", message)

        message.content = "Done"
        message.status = MessageStatus.complete
        message.actions[0].status = ActionStatus.cancelled
        record = svc.save_message("c1", message)

        assert record.sequence == 2
        assert record.status == "complete"
        stored = json.loads(record.actions_json)
        assert stored[0]["status"] == "cancelled"
        assert stored[0]["payload"]["documentId"] == "x"
        assert db_session.query(MessageRecord).count() == 2

    def test_message_without_actions_stores_null(self, svc):
        svc.create_conversation(_conversation())
        record = svc.save_message("c1", Message(role=MessageRole.user, content="Hi"))
        assert record.actions_json is None

    def test_bumps_conversation_activity(self, svc, db_session):
        svc.create_conversation(_conversation())
        svc.save_message("c1", Message(role=MessageRole.user, content="Hi"))
        record = db_session.get(ConversationRecord, "c1")
        assert record.updated_at > "2025-03-01T12:00:00+00:00"


class TestLoadConversation:
    def test_round_trips_messages_and_actions(self, svc):
        svc.create_conversation(_conversation())
        svc.save_message("c1", Message(id="m1", role=MessageRole.user, content="Find pages"))
        svc.save_message("c1", _assistant_with_action())

        loaded = svc.load_conversation("c1")

        assert loaded.title == "Homepage edits"
        assert [m.id for m in loaded.messages] == ["m1", "m2"]
        assert loaded.messages[0].role == MessageRole.user
        action = loaded.messages[1].actions[0]
        assert action.status == ActionStatus.completed
        assert action.result.data == [{"_id": "a"}]
        assert loaded.messages[1].timestamp.tzinfo is not None

    def test_missing(self, svc):
        assert svc.load_conversation("nope") is None

    def test_legacy_success_status(self, svc, db_session):
        svc.create_conversation(_conversation())
        db_session.add(
            MessageRecord(
                id="legacy",
                conversation_id="c1",
                role="assistant",
                content="",
                sequence=1,
                created_at="2025-03-01T12:00:00+00:00",
                actions_json=json.dumps(
                    [
                        {
                            "id": "action-1",
                            "type": "query",
                            "status": "success",
                            "result": {"success": True, "message": "Found 0 result(s)"},
                        }
                    ]
                ),
            )
        )
        db_session.commit()

        loaded = svc.load_conversation("c1")

        assert loaded.messages[0].actions[0].status == ActionStatus.completed

    def test_invalid_stored_action_is_skipped(self, svc, db_session):
        svc.create_conversation(_conversation())
        db_session.add(
            MessageRecord(
                id="bad",
                conversation_id="c1",
                role="assistant",
                sequence=1,
                created_at="2025-03-01T12:00:00+00:00",
                actions_json=json.dumps(
                    [
                        {"type": "teleport"},
                        {"id": "action-ok", "type": "navigate", "payload": {"documentId": "a"}},
                    ]
                ),
            )
        )
        db_session.commit()

        actions = svc.load_conversation("c1").messages[0].actions

        assert [a.id for a in actions] == ["action-ok"]

    def test_corrupted_actions_json(self, svc, db_session):
        svc.create_conversation(_conversation())
        db_session.add(
            MessageRecord(
                id="broken",
                conversation_id="c1",
                role="assistant",
                sequence=1,
                created_at="2025-03-01T12:00:00+00:00",
                actions_json="{not json",
            )
        )
        db_session.commit()

        assert svc.load_conversation("c1").messages[0].actions == []


class TestListAndArchive:
    def test_list_excludes_archived(self, svc):
        svc.create_conversation(_conversation("c1"))
        svc.create_conversation(_conversation("c2"))
        svc.archive_conversation("c1")

        assert [c["id"] for c in svc.list_conversations()] == ["c2"]
        assert {c["id"] for c in svc.list_conversations(active_only=False)} == {"c1", "c2"}

    def test_list_counts_messages(self, svc):
        svc.create_conversation(_conversation())
        svc.save_message("c1", Message(role=MessageRole.user, content="Hi"))
        assert svc.list_conversations()[0]["message_count"] == 1

    def test_most_recent_first(self, svc):
        svc.create_conversation(_conversation("old"))
        svc.create_conversation(_conversation("new"))
        svc.save_message("new", Message(role=MessageRole.user, content="Hi"))

        assert [c.id for c in svc.load_conversations()] == ["new", "old"]

    def test_archive_and_restore(self, svc):
        svc.create_conversation(_conversation())
        assert svc.archive_conversation("c1") is True
        assert svc.load_conversation("c1").archived is True
        assert svc.restore_conversation("c1") is True
        assert svc.load_conversation("c1").archived is False

    def test_archive_missing(self, svc):
        assert svc.archive_conversation("nope") is False
        assert svc.restore_conversation("nope") is False


class TestMutations:
    def test_update_title(self, svc):
        svc.create_conversation(_conversation())
        assert svc.update_title("c1", "Renamed") is True
        assert svc.load_conversation("c1").title == "Renamed"
        assert svc.update_title("nope", "x") is False

    def test_delete_message(self, svc):
        svc.create_conversation(_conversation())
        svc.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))

        assert svc.delete_message("c1", "m1") is True
        assert svc.load_conversation("c1").messages == []

    def test_delete_message_checks_owner(self, svc):
        svc.create_conversation(_conversation("c1"))
        svc.create_conversation(_conversation("c2"))
        svc.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))

        assert svc.delete_message("c2", "m1") is False
        assert svc.delete_message("c1", "missing") is False


class TestScopedConversationStore:
    @pytest.fixture
    def opened(self):
        return []

    @pytest.fixture
    def store(self, db_session: Session, opened):
        @contextmanager
        def session_factory():
            opened.append(db_session)
            yield db_session

        return ScopedConversationStore(session_factory)

    def test_each_write_opens_its_own_session(self, store, opened, svc):
        store.create_conversation(_conversation())
        store.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))
        assert store.update_title("c1", "Renamed") is True

        assert len(opened) == 3
        loaded = svc.load_conversation("c1")
        assert loaded.title == "Renamed"
        assert [m.id for m in loaded.messages] == ["m1"]

    def test_archive_restore_and_delete(self, store, svc):
        store.create_conversation(_conversation())
        store.save_message("c1", Message(id="m1", role=MessageRole.user, content="Hi"))

        assert store.archive_conversation("c1") is True
        assert svc.load_conversation("c1").archived is True
        assert store.restore_conversation("c1") is True
        assert store.delete_message("c1", "m1") is True
        assert svc.load_conversation("c1").messages == []
