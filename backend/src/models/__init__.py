"""SQLAlchemy Models for the compliance review service"""

from .base import Base
from .user import User
from .audit_log import AuditLog
from .document_submission import DocumentSubmission, SubmissionDocument, RejectedDocument
from .notification import Notification

__all__ = [
    "Base",
    "User",
    "AuditLog",
    "DocumentSubmission",
    "SubmissionDocument",
    "RejectedDocument",
    "Notification",
]
