"""Background workers for async task processing.

Tasks accept JSON-serializable arguments only and are enqueued after the
database transaction that produced them has committed.
"""

from .notification_worker import send_notification_email, enqueue_notification_email

__all__ = [
    "send_notification_email",
    "enqueue_notification_email",
]
