"""Tests for the action API routes."""

import pytest

from src.services.content_repository import ContentRepositoryError

DELETE_REPLY = 'Removing it.\n[ACTION]{"type": "delete", "documentId": "page-1"}[/ACTION]'


@pytest.fixture
def delete_action(client, responder, repository):
    """ID of a proposed delete action awaiting confirmation."""
    repository.add({"_id": "page-1", "_type": "page", "title": "Old"})
    responder.replies.append(DELETE_REPLY)
    created = client.post("/api/v1/conversations").json()
    body = client.post(
        f"/api/v1/conversations/{created['id']}/messages",
        json={"content": "Delete the old page"},
    ).json()
    return body["message"]["actions"][0]["id"]


class TestActionRoutes:
    def test_delete_is_gated(self, client, delete_action, repository):
        body = client.get(f"/api/v1/actions/{delete_action}").json()

        assert body["status"] == "pending"
        assert body["decision"] == "require_confirmation"
        assert body["is_destructive"] is True
        assert body["auto_executed"] is False
        assert body["payload"]["document_id"] == "page-1"
        assert "page-1" in repository.documents

    def test_execute_without_confirmation_is_noop(self, client, delete_action, repository):
        body = client.post(f"/api/v1/actions/{delete_action}/execute").json()

        assert body["status"] == "pending"
        assert "page-1" in repository.documents

    def test_confirm_executes(self, client, delete_action, repository):
        response = client.post(f"/api/v1/actions/{delete_action}/confirm")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["result"]["success"] is True
        assert body["result"]["message"] == "Deleted document page-1"
        assert "page-1" not in repository.documents

    def test_cancel_pending(self, client, delete_action, repository):
        body = client.post(f"/api/v1/actions/{delete_action}/cancel").json()

        assert body["status"] == "cancelled"
        assert body["decision"] == "not_executable"
        assert "page-1" in repository.documents

        again = client.post(f"/api/v1/actions/{delete_action}/confirm").json()
        assert again["status"] == "cancelled"

    def test_cancel_terminal_is_unchanged(self, client, delete_action):
        client.post(f"/api/v1/actions/{delete_action}/confirm")

        body = client.post(f"/api/v1/actions/{delete_action}/cancel").json()

        assert body["status"] == "completed"

    def test_preview(self, client, delete_action):
        response = client.get(f"/api/v1/actions/{delete_action}/preview")

        assert response.status_code == 200
        body = response.json()
        assert body["action_id"] == delete_action
        assert "Type: delete" in body["summary"]
        assert "Document ID: page-1" in body["summary"]
        assert body["preview"]["operation"] == "delete"
        assert body["preview"]["document"]["title"] == "Old"

    def test_failed_execution_reports_error(self, client, delete_action, repository):
        repository.error = ContentRepositoryError("Document page-1 not found", status_code=404)

        body = client.post(f"/api/v1/actions/{delete_action}/confirm").json()

        assert body["status"] == "failed"
        assert body["error"] == "Document 'page-1' was not found in the content repository."

    def test_unknown_action(self, client):
        response = client.get("/api/v1/actions/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "E-1004"
