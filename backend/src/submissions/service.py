"""Submission lifecycle: create, upload, delete, submit, start review.

Service functions validate through the workflow tables, flush their changes
and return a WorkflowResult. They never commit; the router wraps each call
in ``workflow_transaction`` so that everything lands in one commit, then
schedules notification delivery and file cleanup.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from audit.service import log_from_request, log_document_activity
from config import get_settings
from domain.compliance.document_types import (
    DocumentType,
    ONE_TIME_OPTIONAL,
    check_mandatory_documents,
    get_document_label,
    is_allowed_for_month,
    is_mandatory,
    parse_month,
)
from domain.compliance.ports import ObjectStoragePort
from domain.compliance.validation import validate_upload_period
from domain.compliance.workflow import (
    DocumentAction,
    DocumentStatus,
    SubmissionAction,
    SubmissionStatus,
    apply_document_transition,
    apply_submission_transition,
)
from models.base import utcnow
from models.document_submission import DocumentSubmission, SubmissionDocument, generate_submission_id
from models.user import User
from notifications.service import (
    NotificationEvent,
    record_notifications,
    submission_submitted_events,
    workflow_update_events,
)
from observability.metrics import documents_uploaded_total
from .access import get_submission_for_owner, get_submission_for_reviewer
from .files import read_upload, store_incoming_file

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    """Outcome of a workflow operation, with its post-commit side effects.

    Attributes:
        submission: The affected submission
        document: The affected document, for document-level operations
        events: Notifications to deliver after commit
        discarded_keys: Storage keys to delete after commit
        created: Whether a new submission was created
    """
    submission: DocumentSubmission
    document: Optional[SubmissionDocument] = None
    events: List[NotificationEvent] = field(default_factory=list)
    discarded_keys: List[str] = field(default_factory=list)
    created: bool = False


def parse_document_type(document_type: str) -> DocumentType:
    try:
        return DocumentType(str(document_type).strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid document type '{document_type}'",
        )


def ensure_type_allowed(submission: DocumentSubmission, document_type: DocumentType) -> None:
    if not is_allowed_for_month(document_type.value, submission.upload_month):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{get_document_label(document_type.value)} is not accepted for "
                   f"{submission.upload_month} submissions",
        )


def ensure_one_time_document_unused(
    db: Session, submission: DocumentSubmission, document_type: DocumentType
) -> None:
    """One-time optional documents may be uploaded in a single submission only."""
    if document_type not in ONE_TIME_OPTIONAL:
        return

    other = (
        db.query(DocumentSubmission.submission_id)
        .join(SubmissionDocument, SubmissionDocument.document_submission_id == DocumentSubmission.id)
        .filter(
            DocumentSubmission.vendor_id == submission.vendor_id,
            DocumentSubmission.id != submission.id,
            SubmissionDocument.document_type == document_type.value,
        )
        .first()
    )
    if other is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{get_document_label(document_type.value)} is a one-time document and was already "
                   f"uploaded in submission {other.submission_id}",
        )


def touch(submission: DocumentSubmission) -> None:
    """Bump last_modified_date (and with it the optimistic version counter)."""
    submission.last_modified_date = utcnow()


def create_submission(
    db: Session,
    vendor: User,
    upload_year: int,
    upload_month: str,
    invoice_no: Optional[str] = None,
    work_location: Optional[str] = None,
    consultant_name: Optional[str] = None,
    consultant_email: Optional[str] = None,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Open the vendor's submission for an upload period.

    An existing draft for the same period is returned as-is; a submission
    for the period that is already past draft is an error.

    Raises:
        HTTPException 400: If the period is invalid or already submitted
    """
    is_valid, error_msg = validate_upload_period(upload_year, upload_month)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)
    month = parse_month(upload_month).value

    existing = (
        db.query(DocumentSubmission)
        .filter(
            DocumentSubmission.vendor_id == vendor.id,
            DocumentSubmission.upload_year == upload_year,
            DocumentSubmission.upload_month == month,
        )
        .first()
    )
    if existing is not None:
        if existing.submission_status == SubmissionStatus.DRAFT.value:
            return WorkflowResult(submission=existing)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A submission for {month} {upload_year} already exists "
                   f"(status: {existing.submission_status})",
        )

    submission_id = generate_submission_id(upload_year, month)
    while db.query(DocumentSubmission.id).filter(DocumentSubmission.submission_id == submission_id).first():
        submission_id = generate_submission_id(upload_year, month)

    consultant = vendor.assigned_consultant
    submission = DocumentSubmission(
        submission_id=submission_id,
        vendor_id=vendor.id,
        upload_year=upload_year,
        upload_month=month,
        submission_status=SubmissionStatus.DRAFT.value,
        invoice_no=invoice_no,
        work_location=work_location or get_settings().DEFAULT_WORK_LOCATION,
        consultant_name=consultant_name or (consultant.name if consultant else None),
        consultant_email=consultant_email or (consultant.email if consultant else None),
        last_modified_date=utcnow(),
    )
    db.add(submission)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="SUBMISSION_CREATED",
        actor_id=vendor.id,
        entity_type="submission",
        entity_id=submission.id,
        description=f"Created submission {submission.submission_id} for {month} {upload_year}",
        metadata={"submission_id": submission.submission_id},
    )

    logger.info(
        f"Submission created: {submission.submission_id}",
        extra={"submission_id": submission.submission_id, "user_id": vendor.id},
    )
    return WorkflowResult(submission=submission, created=True)


async def upload_document(
    db: Session,
    storage: ObjectStoragePort,
    submission_ref: str,
    document_type: str,
    file: Optional[UploadFile],
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Attach a document to a draft submission.

    An existing document of the same type is replaced in place (status back
    to pending, version bumped) unless the workflow forbids replacing it.

    Raises:
        HTTPException 400: Invalid type/file, wrong period, one-time document reused
        HTTPException 403: Not the owning vendor or an admin
        TransitionRejected: Submission is not a draft, or the document cannot be replaced
    """
    submission = get_submission_for_owner(db, submission_ref, actor, for_update=True)
    apply_submission_transition(
        SubmissionStatus(submission.submission_status), SubmissionAction.EDIT_DOCUMENTS, actor.role
    )

    doc_type = parse_document_type(document_type)
    ensure_type_allowed(submission, doc_type)
    ensure_one_time_document_unused(db, submission, doc_type)

    existing = submission.get_document_by_type(doc_type.value)
    current = DocumentStatus(existing.status) if existing is not None else None
    next_status = apply_document_transition(current, DocumentAction.UPLOAD, actor.role)

    incoming = await read_upload(file)
    stored = await store_incoming_file(db, storage, submission, doc_type.value, incoming)

    now = utcnow()
    discarded = []
    if existing is not None:
        if existing.file_path != stored.storage_key:
            discarded.append(existing.file_path)
        document = existing
        document.version = (document.version or 1) + 1
    else:
        document = SubmissionDocument(
            document_type=doc_type.value,
            sequence=max((d.sequence for d in submission.documents), default=0) + 1,
            version=1,
        )
        submission.documents.append(document)

    document.document_name = get_document_label(doc_type.value)
    document.file_name = incoming.filename
    document.file_path = stored.storage_key
    document.file_size = stored.size_bytes
    document.mime_type = incoming.mime_type
    document.status = next_status.value
    document.consultant_remarks = None
    document.review_date = None
    document.reviewed_by_id = None
    document.is_mandatory = is_mandatory(doc_type.value, submission.upload_month)
    document.upload_date = now

    touch(submission)
    db.flush()

    log_document_activity(
        db,
        actor,
        "DOCUMENT_UPLOADED",
        document,
        request=request,
        description=f"Uploaded {document.document_name} ({document.file_name})",
    )
    documents_uploaded_total.labels(document_type=doc_type.value).inc()

    return WorkflowResult(submission=submission, document=document, discarded_keys=discarded)


def delete_document(
    db: Session,
    submission_ref: str,
    document_id: str,
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Remove a document from a draft submission; the file is deleted after commit."""
    submission = get_submission_for_owner(db, submission_ref, actor, for_update=True)
    apply_submission_transition(
        SubmissionStatus(submission.submission_status), SubmissionAction.EDIT_DOCUMENTS, actor.role
    )

    document = submission.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    log_document_activity(
        db,
        actor,
        "DOCUMENT_DELETED",
        document,
        request=request,
        description=f"Deleted {document.document_name} ({document.file_name})",
    )

    storage_key = document.file_path
    submission.documents.remove(document)
    touch(submission)
    db.flush()

    return WorkflowResult(submission=submission, discarded_keys=[storage_key])


def submit_for_review(
    db: Session,
    submission_ref: str,
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Submit a draft for consultant review.

    Raises:
        HTTPException 400: With ``missing_documents`` when mandatory documents are absent
        TransitionRejected: If the submission is not a draft
    """
    submission = get_submission_for_owner(db, submission_ref, actor, for_update=True)
    next_status = apply_submission_transition(
        SubmissionStatus(submission.submission_status), SubmissionAction.SUBMIT, actor.role
    )

    all_uploaded, missing, _required = check_mandatory_documents(
        (d.document_type for d in submission.documents), submission.upload_month
    )
    if not all_uploaded:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Missing mandatory documents",
                "missing_documents": missing,
                "missing_labels": [get_document_label(t) for t in missing],
            },
        )

    now = utcnow()
    submission.submission_status = next_status.value
    submission.submission_date = now
    touch(submission)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="SUBMISSION_SUBMITTED",
        actor_id=actor.id,
        entity_type="submission",
        entity_id=submission.id,
        description=f"Submitted {submission.submission_id} with {len(submission.documents)} documents",
        metadata={"submission_id": submission.submission_id, "document_count": len(submission.documents)},
    )

    events = record_notifications(db, submission_submitted_events(db, submission, actor))
    logger.info(
        f"Submission submitted: {submission.submission_id}",
        extra={"submission_id": submission.submission_id, "user_id": actor.id},
    )
    return WorkflowResult(submission=submission, events=events)


def start_review(
    db: Session,
    submission_ref: str,
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Take a submitted submission into review; pending documents move to under_review."""
    submission = get_submission_for_reviewer(db, submission_ref, actor, for_update=True)
    next_status = apply_submission_transition(
        SubmissionStatus(submission.submission_status), SubmissionAction.START_REVIEW, actor.role
    )

    for document in submission.documents:
        if document.status in (DocumentStatus.PENDING.value, DocumentStatus.UPLOADED.value):
            document.status = apply_document_transition(
                DocumentStatus(document.status), DocumentAction.MARK_UNDER_REVIEW, actor.role
            ).value

    submission.submission_status = next_status.value
    touch(submission)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="SUBMISSION_REVIEW_STARTED",
        actor_id=actor.id,
        entity_type="submission",
        entity_id=submission.id,
        description=f"Started review of {submission.submission_id}",
    )

    events = record_notifications(
        db,
        workflow_update_events(
            submission,
            actor,
            title="Review started",
            message=f"Your submission {submission.submission_id} is now under review.",
        ),
    )
    return WorkflowResult(submission=submission, events=events)
