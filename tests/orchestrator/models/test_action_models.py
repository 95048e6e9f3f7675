"""Tests for Action, Message and Conversation models."""

import pytest
from pydantic import ValidationError

from src.orchestrator.models.action import (
    Action,
    ActionPayload,
    ActionResult,
    ActionStatus,
    ActionType,
    generate_action_id,
)
from src.orchestrator.models.conversation import Conversation, Message, MessageRole


class TestActionPayload:
    """Tests for wire aliases on ActionPayload."""

    def test_accepts_camel_case_aliases(self):
        payload = ActionPayload.model_validate(
            {"documentId": "abc", "documentType": "page", "fields": {"title": "Hi"}}
        )
        assert payload.document_id == "abc"
        assert payload.document_type == "page"
        assert payload.field_values == {"title": "Hi"}

    def test_accepts_field_names(self):
        payload = ActionPayload(document_id="abc", field_values={"a": 1})
        assert payload.document_id == "abc"
        assert payload.unset == []

    def test_dumps_with_aliases(self):
        dumped = ActionPayload(document_id="abc").model_dump(by_alias=True)
        assert dumped["documentId"] == "abc"


class TestActionInvariants:
    """Tests for result/error exclusivity."""

    def test_defaults_to_pending(self):
        action = Action(type=ActionType.query)
        assert action.status == ActionStatus.pending
        assert action.result is None
        assert action.error is None
        assert action.id.startswith("action-")

    def test_pending_action_cannot_carry_result(self):
        with pytest.raises(ValidationError):
            Action(
                type=ActionType.query,
                result=ActionResult(success=True, message="ok"),
            )

    def test_error_only_when_failed(self):
        with pytest.raises(ValidationError):
            Action(type=ActionType.query, status=ActionStatus.completed, error="boom")

    def test_result_and_error_are_exclusive(self):
        with pytest.raises(ValidationError):
            Action(
                type=ActionType.query,
                status=ActionStatus.failed,
                result=ActionResult(success=False, message="x"),
                error="boom",
            )

    def test_failed_with_error_is_valid(self):
        action = Action(type=ActionType.delete, status=ActionStatus.failed, error="boom")
        assert action.is_terminal

    def test_legacy_success_status_reads_as_completed(self):
        action = Action.model_validate(
            {
                "type": "query",
                "status": "success",
                "result": {"success": True, "message": "Found 1 result(s)"},
            }
        )
        assert action.status == ActionStatus.completed

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            Action.model_validate({"type": "query", "status": "done"})


class TestAutoExecuteMarker:
    """Tests for the at-most-once marker."""

    def test_marker_set_once(self):
        action = Action(type=ActionType.query)
        assert action.auto_executed is False
        assert action.mark_auto_executed() is True
        assert action.mark_auto_executed() is False
        assert action.auto_executed is True

    def test_marker_is_not_serialized(self):
        action = Action(type=ActionType.query)
        action.mark_auto_executed()
        restored = Action.model_validate(action.model_dump())
        assert restored.auto_executed is False


class TestConversation:
    """Tests for Conversation helpers."""

    def test_find_action_across_messages(self):
        first = Action(type=ActionType.query)
        second = Action(type=ActionType.navigate)
        conversation = Conversation(
            messages=[
                Message(role=MessageRole.assistant, actions=[first]),
                Message(role=MessageRole.assistant, actions=[second]),
            ]
        )
        assert conversation.find_action(second.id) is second
        assert conversation.find_action("missing") is None

    def test_message_keeps_action_identity(self):
        action = Action(type=ActionType.query)
        message = Message(role=MessageRole.assistant, actions=[action])
        assert message.actions[0] is action

    def test_generated_ids_are_unique(self):
        assert generate_action_id() != generate_action_id()
