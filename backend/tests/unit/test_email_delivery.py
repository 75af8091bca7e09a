"""Unit tests for notification email delivery

Tests cover:
- Primary/fallback provider selection in EmailService
- HTTP provider payload and error mapping
- The celery task result for sent, skipped and failed deliveries
"""

import pytest
import requests

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.notifications.ports import EmailDeliveryError, EmailMessage, EmailProviderPort
from infrastructure.email import EmailService, HttpEmailProvider
from workers.notification_worker import send_notification_email


class RecordingProvider(EmailProviderPort):

    def __init__(self, name: str, fail: bool = False):
        self.name = name
        self.fail = fail
        self.messages = []

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise EmailDeliveryError(f"{self.name} down")
        self.messages.append(message)

    def is_configured(self) -> bool:
        return True


class TestEmailService:

    def test_primary_delivers(self):
        primary, fallback = RecordingProvider("http"), RecordingProvider("smtp")
        service = EmailService(primary, fallback)

        assert service.send("vendor@test.com", "Subject", "Body", notification_type="document_rejected") == "http"
        assert primary.messages[0].template_params == {"notification_type": "document_rejected"}
        assert fallback.messages == []

    def test_fallback_used_when_primary_fails(self):
        primary, fallback = RecordingProvider("http", fail=True), RecordingProvider("smtp")
        service = EmailService(primary, fallback)

        assert service.send("vendor@test.com", "Subject", "Body") == "smtp"
        assert fallback.messages[0].to == "vendor@test.com"

    def test_both_failing_raises(self):
        service = EmailService(RecordingProvider("http", fail=True), RecordingProvider("smtp", fail=True))

        with pytest.raises(EmailDeliveryError, match="smtp down"):
            service.send("vendor@test.com", "Subject", "Body")

    def test_primary_failure_without_fallback_raises(self):
        service = EmailService(RecordingProvider("http", fail=True))

        with pytest.raises(EmailDeliveryError, match="http down"):
            service.send("vendor@test.com", "Subject", "Body")

    def test_disabled_skips(self):
        primary = RecordingProvider("http")

        assert EmailService(primary, enabled=False).send("vendor@test.com", "Subject", "Body") is None
        assert primary.messages == []

    def test_missing_recipient_skips(self):
        assert EmailService(RecordingProvider("http")).send("", "Subject", "Body") is None


class FakeResponse:

    def __init__(self, status_code: int, text: str = "OK"):
        self.status_code = status_code
        self.text = text


class FakeSession:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _http_provider(session, **overrides):
    options = dict(
        api_url="https://mail.example.com/send",
        service_id="service_1",
        template_id="template_1",
        public_key="public_1",
        private_key="private_1",
        timeout=5.0,
        session=session,
    )
    options.update(overrides)
    return HttpEmailProvider(**options)


class TestHttpEmailProvider:

    def test_payload(self):
        session = FakeSession(response=FakeResponse(200))
        provider = _http_provider(session)

        provider.send(EmailMessage(
            to="vendor@test.com", subject="Rejected", body="Please resubmit",
            template_params={"submission_id": "SUB-2025-Jul-ABC123"},
        ))

        call = session.calls[0]
        assert call["url"] == "https://mail.example.com/send"
        assert call["timeout"] == 5.0
        assert call["json"] == {
            "service_id": "service_1",
            "template_id": "template_1",
            "user_id": "public_1",
            "accessToken": "private_1",
            "template_params": {
                "to_email": "vendor@test.com",
                "subject": "Rejected",
                "message": "Please resubmit",
                "submission_id": "SUB-2025-Jul-ABC123",
            },
        }

    def test_error_status(self):
        provider = _http_provider(FakeSession(response=FakeResponse(403, "forbidden")))

        with pytest.raises(EmailDeliveryError, match="403"):
            provider.send(EmailMessage(to="a@test.com", subject="s", body="b"))

    def test_network_error(self):
        provider = _http_provider(FakeSession(error=requests.ConnectionError("refused")))

        with pytest.raises(EmailDeliveryError, match="refused"):
            provider.send(EmailMessage(to="a@test.com", subject="s", body="b"))

    def test_unconfigured(self):
        session = FakeSession(response=FakeResponse(200))
        provider = _http_provider(session, service_id=None)

        with pytest.raises(EmailDeliveryError, match="not configured"):
            provider.send(EmailMessage(to="a@test.com", subject="s", body="b"))
        assert session.calls == []


class TestSendNotificationEmailTask:

    def _run(self):
        return send_notification_email(
            to="vendor@test.com",
            subject="Document rejected",
            body="Please resubmit",
            notification_type="document_rejected",
            submission_id="SUB-2025-Jul-ABC123",
        )

    def test_sent(self, monkeypatch):
        primary = RecordingProvider("http")
        monkeypatch.setattr(
            "workers.notification_worker.build_email_service", lambda: EmailService(primary)
        )

        assert self._run() == {"status": "sent", "provider": "http"}
        assert primary.messages[0].template_params["submission_id"] == "SUB-2025-Jul-ABC123"

    def test_skipped(self, monkeypatch):
        monkeypatch.setattr(
            "workers.notification_worker.build_email_service",
            lambda: EmailService(RecordingProvider("http"), enabled=False),
        )

        assert self._run() == {"status": "skipped"}

    def test_failure_is_reported_not_raised(self, monkeypatch):
        monkeypatch.setattr(
            "workers.notification_worker.build_email_service",
            lambda: EmailService(RecordingProvider("http", fail=True), RecordingProvider("smtp", fail=True)),
        )

        result = self._run()

        assert result["status"] == "failed"
        assert "smtp down" in result["error"]
