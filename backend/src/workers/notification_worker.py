"""Notification Email Worker - delivers workflow emails outside the request.

Tasks take plain strings only (JSON serializable) and never touch the
database: the notification row was already committed by the workflow
operation that triggered it.
"""

import logging
from typing import Dict, Any, Optional

from celery import shared_task

from domain.notifications.ports import EmailDeliveryError
from infrastructure.email import build_email_service

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="notifications.send_email")
def send_notification_email(
    self,
    to: str,
    subject: str,
    body: str,
    notification_type: Optional[str] = None,
    submission_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Send one notification email through the primary/fallback providers.

    Delivery failures are logged and reported in the result; they are never
    re-raised, because the workflow change has already been committed.

    Returns:
        Dict with:
            - status: 'sent', 'skipped' or 'failed'
            - provider: Provider that delivered the message (if sent)
            - error: Error message (if failed)
    """
    service = build_email_service()

    try:
        provider = service.send(
            to=to,
            subject=subject,
            body=body,
            notification_type=notification_type or "",
            submission_id=submission_id or "",
        )
    except EmailDeliveryError as e:
        logger.error(
            f"Notification email failed: to={to}, subject={subject}, error={e}",
            extra={"submission_id": submission_id, "channel": "email"},
        )
        return {"status": "failed", "error": str(e)}

    if provider is None:
        return {"status": "skipped"}

    logger.info(
        f"Notification email sent: to={to}, provider={provider}",
        extra={"submission_id": submission_id, "channel": "email"},
    )
    return {"status": "sent", "provider": provider}


def enqueue_notification_email(
    to: str,
    subject: str,
    body: str,
    notification_type: Optional[str] = None,
    submission_id: Optional[str] = None,
):
    """Queue a notification email.

    Example:
        enqueue_notification_email(
            to=vendor.email,
            subject="Document rejected",
            body="...",
            notification_type="document_rejected",
            submission_id=submission.submission_id,
        )
    """
    # Importing the app binds shared tasks to its configuration
    from .celery_app import celery_app  # noqa: F401

    return send_notification_email.delay(
        to=to,
        subject=subject,
        body=body,
        notification_type=notification_type,
        submission_id=submission_id,
    )
