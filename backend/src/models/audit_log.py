"""AuditLog SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, PortableJSONB, utcnow


class AuditLog(Base):
    """AuditLog model for the append-only activity trail.

    Records logins, user administration and every review workflow action
    (upload, submit, review, finalize, resubmit). Entries are never updated
    or deleted.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_actor_id", "actor_id"),
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_created_at", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(UUID(as_uuid=True), nullable=True)
    description = Column(Text, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Relationships
    actor = relationship("User")
