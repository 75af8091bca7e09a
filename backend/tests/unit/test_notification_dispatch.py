"""Unit tests for post-commit notification dispatch"""

import asyncio
import threading
from uuid import uuid4

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from notifications import service
from notifications.registry import InMemoryConnectionRegistry
from notifications.service import NotificationEvent, dispatch_notifications


def _event(**fields) -> NotificationEvent:
    defaults = dict(
        recipient_id=uuid4(),
        recipient_email="vendor@test.com",
        type="document_rejected",
        title="Document rejected",
        message="Invoice rejected: wrong month",
        submission_id="SUB-2025-Jul-ABC123",
    )
    defaults.update(fields)
    return NotificationEvent(**defaults)


class TestDispatchNotifications:

    def test_email_is_queued_off_the_event_loop_thread(self, monkeypatch):
        calls = []

        def fake_enqueue(**kwargs):
            calls.append((threading.get_ident(), kwargs))

        monkeypatch.setattr(service, "enqueue_notification_email", fake_enqueue)

        async def scenario():
            loop_thread = threading.get_ident()
            await dispatch_notifications([_event()], InMemoryConnectionRegistry())
            return loop_thread

        loop_thread = asyncio.run(scenario())

        assert len(calls) == 1
        thread_id, kwargs = calls[0]
        assert thread_id != loop_thread
        assert kwargs["to"] == "vendor@test.com"
        assert kwargs["subject"] == "Document rejected"

    def test_in_app_only_events_send_no_email(self, monkeypatch):
        calls = []
        monkeypatch.setattr(service, "enqueue_notification_email", lambda **kwargs: calls.append(kwargs))

        asyncio.run(dispatch_notifications([_event(send_email=False)], InMemoryConnectionRegistry()))

        assert calls == []

    def test_queue_failure_is_swallowed(self, monkeypatch):
        def broken_enqueue(**kwargs):
            raise ConnectionError("broker unreachable")

        monkeypatch.setattr(service, "enqueue_notification_email", broken_enqueue)

        asyncio.run(dispatch_notifications([_event()], InMemoryConnectionRegistry()))
