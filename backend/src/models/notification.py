"""Notification SQLAlchemy model

In-app notifications shown to vendors and consultants. Rows are written in
the same transaction as the workflow change that caused them; realtime push
and email delivery happen after commit.
"""

from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Text, false
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, PortableJSONB, utcnow


NOTIFICATION_TYPES = (
    "document_submission",
    "document_resubmitted",
    "document_approved",
    "document_rejected",
    "workflow_update",
)

NOTIFICATION_PRIORITIES = ("low", "medium", "high", "urgent")


class Notification(Base):
    """A notification addressed to one user."""
    __tablename__ = "notification"
    __table_args__ = (
        CheckConstraint(
            f"type IN ({', '.join(repr(t) for t in NOTIFICATION_TYPES)})",
            name="ck_notification_type",
        ),
        CheckConstraint(
            f"priority IN ({', '.join(repr(p) for p in NOTIFICATION_PRIORITIES)})",
            name="ck_notification_priority",
        ),
        Index("ix_notification_recipient_read", "recipient_id", "is_read"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    recipient_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(Text, nullable=False, default="medium", server_default="medium")
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(TIMESTAMP(timezone=True), nullable=True)
    document_submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("document_submission.id", ondelete="SET NULL"),
        nullable=True,
    )
    metadata_json = Column(PortableJSONB, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Relationships
    recipient = relationship("User", foreign_keys=[recipient_id])
    sender = relationship("User", foreign_keys=[sender_id])
