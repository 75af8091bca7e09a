"""Notification service for workflow events.

Two phases:

1. Inside the workflow transaction, ``record_notifications`` writes the
   in-app Notification rows (in a SAVEPOINT, so a failure there never
   rolls back the workflow change).
2. After commit, ``dispatch_notifications`` pushes each notification to the
   recipient's live connections and queues the email. Both are best-effort:
   failures are logged and counted, never raised.

Routers schedule phase 2 with FastAPI BackgroundTasks.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.roles import UserRole
from domain.compliance.document_types import get_document_label
from domain.notifications.ports import ConnectionRegistryPort
from models.document_submission import DocumentSubmission, SubmissionDocument
from models.base import utcnow
from models.notification import Notification
from models.user import User
from observability.metrics import notifications_sent_total
from workers.notification_worker import enqueue_notification_email

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """A notification addressed to one user, detached from the session.

    Events are plain data so they can be dispatched after the request's
    session is closed.
    """
    recipient_id: UUID
    recipient_email: Optional[str]
    type: str
    title: str
    message: str
    priority: str = "medium"
    sender_id: Optional[UUID] = None
    submission_uuid: Optional[UUID] = None
    submission_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    notification_id: Optional[UUID] = None
    send_email: bool = True

    def payload(self) -> Dict[str, Any]:
        """Realtime payload pushed to connected clients."""
        return {
            "event": "notification",
            "id": str(self.notification_id) if self.notification_id else None,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "document_submission_id": str(self.submission_uuid) if self.submission_uuid else None,
            "submission_id": self.submission_id,
            "metadata": self.metadata,
        }


def _event(recipient: User, submission: DocumentSubmission, sender: Optional[User], **kwargs) -> NotificationEvent:
    return NotificationEvent(
        recipient_id=recipient.id,
        recipient_email=recipient.email,
        sender_id=sender.id if sender is not None else None,
        submission_uuid=submission.id,
        submission_id=submission.submission_id,
        **kwargs,
    )


def get_reviewers_for(db: Session, submission: DocumentSubmission) -> List[User]:
    """Reviewers to notify for a vendor's submission.

    The vendor's assigned consultant if there is an active one, otherwise
    every active admin.
    """
    vendor = submission.vendor
    consultant = vendor.assigned_consultant if vendor is not None else None
    if consultant is not None and consultant.is_active:
        return [consultant]

    return (
        db.query(User)
        .filter(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
        .all()
    )


def submission_submitted_events(
    db: Session, submission: DocumentSubmission, sender: User
) -> List[NotificationEvent]:
    vendor = submission.vendor
    company = vendor.company_name or vendor.name
    period = f"{submission.upload_month} {submission.upload_year}"
    return [
        _event(
            reviewer,
            submission,
            sender,
            type="document_submission",
            title="New document submission",
            message=f"{company} submitted {len(submission.documents)} documents for {period} "
                    f"({submission.submission_id}).",
            priority="medium",
            metadata={"vendor_id": str(vendor.id), "document_count": len(submission.documents)},
        )
        for reviewer in get_reviewers_for(db, submission)
    ]


def document_rejected_events(
    submission: DocumentSubmission, document: SubmissionDocument, sender: User
) -> List[NotificationEvent]:
    label = get_document_label(document.document_type)
    return [
        _event(
            submission.vendor,
            submission,
            sender,
            type="document_rejected",
            title=f"Document rejected: {label}",
            message=f"Your {label} for {submission.upload_month} {submission.upload_year} was rejected. "
                    f"Remarks: {document.consultant_remarks}. Please resubmit the document.",
            priority="high",
            metadata={
                "document_id": str(document.id),
                "document_type": document.document_type,
                "remarks": document.consultant_remarks,
            },
        )
    ]


def submission_finalized_events(submission: DocumentSubmission, sender: User) -> List[NotificationEvent]:
    period = f"{submission.upload_month} {submission.upload_year}"
    if submission.is_approved:
        title = "Submission approved"
        message = f"Your compliance submission for {period} ({submission.submission_id}) was approved."
        notification_type = "document_approved"
        priority = "medium"
    else:
        title = "Submission rejected"
        message = (
            f"Your compliance submission for {period} ({submission.submission_id}) was rejected. "
            f"Remarks: {submission.approval_remarks}"
        )
        notification_type = "document_rejected"
        priority = "high"

    return [
        _event(
            submission.vendor,
            submission,
            sender,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            metadata={
                "submission_status": submission.submission_status,
                "remarks": submission.approval_remarks,
            },
        )
    ]


def document_resubmitted_events(
    db: Session, submission: DocumentSubmission, document: SubmissionDocument, sender: User
) -> List[NotificationEvent]:
    vendor = submission.vendor
    label = get_document_label(document.document_type)
    return [
        _event(
            reviewer,
            submission,
            sender,
            type="document_resubmitted",
            title=f"Document resubmitted: {label}",
            message=f"{vendor.company_name or vendor.name} resubmitted {label} for "
                    f"{submission.upload_month} {submission.upload_year}.",
            priority="medium",
            metadata={"document_id": str(document.id), "document_type": document.document_type},
        )
        for reviewer in get_reviewers_for(db, submission)
    ]


def workflow_update_events(
    submission: DocumentSubmission, sender: User, title: str, message: str
) -> List[NotificationEvent]:
    return [
        _event(
            submission.vendor,
            submission,
            sender,
            type="workflow_update",
            title=title,
            message=message,
            priority="low",
            metadata={"submission_status": submission.submission_status},
            send_email=False,
        )
    ]


def record_notifications(db: Session, events: Iterable[NotificationEvent]) -> List[NotificationEvent]:
    """Write in-app Notification rows for the events.

    Runs inside the caller's transaction. Each event gets its notification_id
    assigned so the realtime payload can reference the stored row.

    Returns:
        The events whose row was written (events are still dispatched when
        the row could not be written).
    """
    events = list(events)
    if not events:
        return events

    try:
        with db.begin_nested():
            for event in events:
                notification = Notification(
                    recipient_id=event.recipient_id,
                    sender_id=event.sender_id,
                    type=event.type,
                    title=event.title,
                    message=event.message,
                    priority=event.priority,
                    document_submission_id=event.submission_uuid,
                    metadata_json=event.metadata or None,
                )
                db.add(notification)
                db.flush()
                event.notification_id = notification.id
        notifications_sent_total.labels(channel="in_app", outcome="success").inc(len(events))
    except SQLAlchemyError as e:
        for event in events:
            event.notification_id = None
        notifications_sent_total.labels(channel="in_app", outcome="error").inc(len(events))
        logger.warning(f"Writing in-app notifications failed: count={len(events)}, error={e}")

    return events


async def dispatch_notifications(
    events: Iterable[NotificationEvent],
    registry: ConnectionRegistryPort,
) -> None:
    """Deliver committed notifications over realtime and email channels."""
    for event in events:
        try:
            await registry.send_to_user(event.recipient_id, event.payload())
        except Exception as e:
            notifications_sent_total.labels(channel="realtime", outcome="error").inc()
            logger.warning(
                f"Realtime push failed: recipient_id={event.recipient_id}, error={e}",
                extra={"submission_id": event.submission_id, "channel": "realtime"},
            )

        if not event.send_email or not event.recipient_email:
            continue

        # Off the event loop: eager mode sends the email inline
        try:
            await run_in_threadpool(
                enqueue_notification_email,
                to=event.recipient_email,
                subject=event.title,
                body=event.message,
                notification_type=event.type,
                submission_id=event.submission_id,
            )
        except Exception as e:
            notifications_sent_total.labels(channel="email", outcome="error").inc()
            logger.error(
                f"Queueing notification email failed: to={event.recipient_email}, error={e}",
                extra={"submission_id": event.submission_id, "channel": "email"},
            )


def mark_read(db: Session, user: User, notification_id: UUID) -> Optional[Notification]:
    """Mark one of the user's notifications read (None if it is not theirs)."""
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == user.id)
        .first()
    )
    if notification is None:
        return None

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.flush()
    return notification


def mark_all_read(db: Session, user: User) -> int:
    """Mark every unread notification of the user read."""
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.is_read.is_(False))
        .update({Notification.is_read: True, Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.flush()
    return updated
