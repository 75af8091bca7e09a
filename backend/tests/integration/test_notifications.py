"""Integration tests for in-app notifications, emails and the realtime socket"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from auth.jwt import create_access_token
from conftest import API, find_document


pytestmark = pytest.mark.integration

NOTIFICATIONS = f"{API}/notifications"


class TestWorkflowNotifications:
    """Notifications raised by workflow transitions"""

    def test_submit_notifies_assigned_consultant(self, flow, consultant_client: TestClient, sent_emails):
        submission = flow.submitted()

        response = consultant_client.get(NOTIFICATIONS)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["unread_count"] == 1
        notification = data["notifications"][0]
        assert notification["type"] == "document_submission"
        assert notification["document_submission_id"] == submission["id"]
        assert [e["to"] for e in sent_emails] == ["consultant@test.com"]

    def test_submit_without_consultant_notifies_admins(
        self, flow, other_vendor_client: TestClient, admin_client: TestClient, sent_emails
    ):
        flow.submitted(client=other_vendor_client)

        data = admin_client.get(NOTIFICATIONS).json()

        assert data["total"] == 1
        assert [e["to"] for e in sent_emails] == ["admin@test.com"]

    def test_rejection_notifies_vendor(self, flow, vendor_client: TestClient, sent_emails):
        submission = flow.submitted()
        invoice = find_document(submission, "INVOICE")
        sent_emails.clear()

        flow.review(submission["submission_id"], invoice["id"], "rejected", "Unsigned invoice")

        data = vendor_client.get(NOTIFICATIONS).json()
        assert [n["type"] for n in data["notifications"]] == ["document_rejected"]
        assert "Unsigned invoice" in data["notifications"][0]["message"]
        assert [e["to"] for e in sent_emails] == ["vendor@test.com"]

    def test_start_review_is_in_app_only(self, flow, vendor_client: TestClient, consultant_client: TestClient, sent_emails):
        submission = flow.submitted()
        sent_emails.clear()

        response = consultant_client.post(f"{API}/document-submissions/{submission['submission_id']}/start-review")
        assert response.status_code == 200

        data = vendor_client.get(NOTIFICATIONS).json()
        assert [n["type"] for n in data["notifications"]] == ["workflow_update"]
        assert sent_emails == []


class TestInbox:
    """Test listing and marking notifications read"""

    def test_mark_read(self, flow, consultant_client: TestClient):
        flow.submitted()
        notification = consultant_client.get(NOTIFICATIONS).json()["notifications"][0]

        response = consultant_client.patch(f"{NOTIFICATIONS}/{notification['id']}/read")

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert response.json()["read_at"] is not None
        assert consultant_client.get(NOTIFICATIONS, params={"unread_only": True}).json()["total"] == 0

    def test_cannot_mark_someone_elses_notification(self, flow, consultant_client: TestClient, vendor_client: TestClient):
        flow.submitted()
        notification = consultant_client.get(NOTIFICATIONS).json()["notifications"][0]

        response = vendor_client.patch(f"{NOTIFICATIONS}/{notification['id']}/read")

        assert response.status_code == 404

    def test_read_all(self, flow, consultant_client: TestClient):
        flow.submitted(2025, "Jul")
        flow.submitted(2025, "Aug")

        response = consultant_client.patch(f"{NOTIFICATIONS}/read-all")

        assert response.status_code == 200
        assert response.json()["updated"] == 2
        assert consultant_client.get(NOTIFICATIONS).json()["unread_count"] == 0


class TestRealtimeSocket:
    """Test the /ws/notifications endpoint"""

    def test_connect_and_ping(self, app, consultant_user):
        token = create_access_token(
            user_id=consultant_user.id, role=consultant_user.role, email=consultant_user.email
        )

        with TestClient(app).websocket_connect(f"/ws/notifications?token={token}") as websocket:
            greeting = websocket.receive_json()
            assert greeting == {"event": "connected", "user_id": str(consultant_user.id)}

            websocket.send_text("ping")
            assert websocket.receive_json() == {"event": "pong"}

    def test_invalid_token_is_refused(self, app):
        with pytest.raises(WebSocketDisconnect):
            with TestClient(app).websocket_connect("/ws/notifications?token=garbage") as websocket:
                websocket.receive_json()
