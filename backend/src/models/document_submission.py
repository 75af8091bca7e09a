"""DocumentSubmission SQLAlchemy models

A DocumentSubmission is a vendor's bundle of compliance documents for one
(year, month) upload period. SubmissionDocument rows hold one file per
document type together with the reviewer decision. RejectedDocument keeps
the rejection history used to track resubmissions.
"""

import secrets
import string
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base, utcnow


SUBMISSION_STATUSES = (
    "draft",
    "submitted",
    "under_review",
    "partially_approved",
    "fully_approved",
    "rejected",
    "requires_resubmission",
)

DOCUMENT_STATUSES = (
    "pending",
    "uploaded",
    "under_review",
    "approved",
    "rejected",
    "resubmitted",
    "requires_resubmission",
)


def _in_list(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def generate_submission_id(year: int, month: str) -> str:
    """Human-readable submission id: SUB-{year}-{month}-{6 random A-Z0-9}"""
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"SUB-{year}-{month}-{suffix}"


class DocumentSubmission(Base):
    """A vendor's monthly compliance submission.

    row_version is SQLAlchemy's optimistic-concurrency counter: every UPDATE
    checks and bumps it, so two writers racing on the same submission cannot
    both commit.
    """
    __tablename__ = "document_submission"
    __table_args__ = (
        UniqueConstraint("vendor_id", "upload_year", "upload_month", name="uq_submission_vendor_period"),
        CheckConstraint(_in_list("submission_status", SUBMISSION_STATUSES), name="ck_submission_status"),
        CheckConstraint("upload_year BETWEEN 2023 AND 2035", name="ck_submission_upload_year"),
        Index("ix_document_submission_vendor_id", "vendor_id"),
        Index("ix_document_submission_status", "submission_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    submission_id = Column(Text, nullable=False, unique=True)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="RESTRICT"), nullable=False)
    upload_year = Column(Integer, nullable=False)
    upload_month = Column(Text, nullable=False)
    submission_status = Column(Text, nullable=False, default="draft", server_default="draft")

    # Consultant decision on the whole submission
    is_approved = Column(Boolean, nullable=False, default=False, server_default=false())
    approval_date = Column(TIMESTAMP(timezone=True), nullable=True)
    approval_remarks = Column(Text, nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)

    invoice_no = Column(Text, nullable=True)
    work_location = Column(Text, nullable=True)
    consultant_name = Column(Text, nullable=True)
    consultant_email = Column(Text, nullable=True)

    submission_date = Column(TIMESTAMP(timezone=True), nullable=True)
    last_modified_date = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    row_version = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __mapper_args__ = {"version_id_col": row_version}

    # Relationships
    vendor = relationship("User", foreign_keys=[vendor_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    documents = relationship(
        "SubmissionDocument",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionDocument.sequence",
    )
    rejected_documents = relationship(
        "RejectedDocument",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="RejectedDocument.rejected_date",
    )

    def get_document(self, document_id) -> "SubmissionDocument | None":
        """Find an embedded document by its UUID."""
        for document in self.documents:
            if str(document.id) == str(document_id):
                return document
        return None

    def get_document_by_type(self, document_type: str) -> "SubmissionDocument | None":
        """Find the embedded document of a given type (at most one exists)."""
        for document in self.documents:
            if document.document_type == document_type:
                return document
        return None


class SubmissionDocument(Base):
    """One compliance document inside a submission."""
    __tablename__ = "submission_document"
    __table_args__ = (
        UniqueConstraint("document_submission_id", "document_type", name="uq_submission_document_type"),
        CheckConstraint(_in_list("status", DOCUMENT_STATUSES), name="ck_submission_document_status"),
        Index("ix_submission_document_submission_id", "document_submission_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    document_submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("document_submission.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence = Column(Integer, nullable=False, default=0)
    document_type = Column(Text, nullable=False)
    document_name = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)  # storage key
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending", server_default="pending")
    consultant_remarks = Column(Text, nullable=True)
    is_mandatory = Column(Boolean, nullable=False, default=False, server_default=false())
    version = Column(Integer, nullable=False, default=1, server_default="1")
    upload_date = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    review_date = Column(TIMESTAMP(timezone=True), nullable=True)
    reviewed_by_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    resubmission_date = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    # Relationships
    submission = relationship("DocumentSubmission", back_populates="documents")
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])


class RejectedDocument(Base):
    """Rejection history entry, closed when the vendor resubmits."""
    __tablename__ = "rejected_document"
    __table_args__ = (
        Index("ix_rejected_document_submission_id", "document_submission_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    document_submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("document_submission.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_id = Column(
        UUID(as_uuid=True),
        ForeignKey("submission_document.id", ondelete="SET NULL"),
        nullable=True,
    )
    document_type = Column(Text, nullable=False)
    rejection_reason = Column(Text, nullable=False)
    rejected_date = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    rejected_by_id = Column(UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    is_resubmitted = Column(Boolean, nullable=False, default=False, server_default=false())
    resubmission_date = Column(TIMESTAMP(timezone=True), nullable=True)

    submission = relationship("DocumentSubmission", back_populates="rejected_documents")
