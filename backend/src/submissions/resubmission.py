"""Vendor resubmission of rejected documents.

The usual path updates the rejected document in place. When the client
refers to a document the server does not know (stale id), the request must
name the document_type; the server then resubmits the existing document of
that type, or creates exactly one new document. It never creates a second
document of a type that already exists.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from audit.service import log_document_activity
from domain.compliance.derivation import recompute_submission_status
from domain.compliance.document_types import get_document_label, is_mandatory
from domain.compliance.ports import ObjectStoragePort
from domain.compliance.workflow import (
    DocumentAction,
    DocumentStatus,
    FINAL_SUBMISSION_STATUSES,
    SubmissionAction,
    SubmissionStatus,
    apply_document_transition,
    apply_submission_transition,
)
from models.base import utcnow
from models.document_submission import DocumentSubmission, SubmissionDocument
from models.user import User
from notifications.service import document_resubmitted_events, record_notifications
from observability.metrics import documents_uploaded_total
from .access import get_submission_for_owner
from .files import read_upload, store_incoming_file
from .service import (
    WorkflowResult,
    ensure_one_time_document_unused,
    ensure_type_allowed,
    parse_document_type,
    touch,
)

logger = logging.getLogger(__name__)


def resolve_resubmission_target(
    db: Session,
    submission: DocumentSubmission,
    document_id: str,
    document_type: Optional[str],
) -> Optional[SubmissionDocument]:
    """Find the document a resubmission applies to.

    Returns:
        The existing document, or None when a new document of
        ``document_type`` has to be created

    Raises:
        HTTPException 404: Unknown document_id and no document_type given
        HTTPException 400: Invalid document_type, or a one-time document
            already uploaded in another submission
    """
    document = submission.get_document(document_id)
    if document is not None:
        return document

    if not document_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found. Provide document_type to resubmit a missing document.",
        )

    doc_type = parse_document_type(document_type)
    ensure_type_allowed(submission, doc_type)
    existing = submission.get_document_by_type(doc_type.value)
    if existing is None:
        ensure_one_time_document_unused(db, submission, doc_type)
    return existing


def _close_ledger_entries(submission: DocumentSubmission, document: SubmissionDocument) -> int:
    now = utcnow()
    closed = 0
    for entry in submission.rejected_documents:
        if entry.is_resubmitted:
            continue
        if entry.document_id == document.id or (
            entry.document_id is None and entry.document_type == document.document_type
        ):
            entry.is_resubmitted = True
            entry.resubmission_date = now
            closed += 1
    return closed


async def resubmit_document(
    db: Session,
    storage: ObjectStoragePort,
    submission_ref: str,
    document_id: str,
    file: Optional[UploadFile],
    actor: User,
    document_type: Optional[str] = None,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Replace a rejected document with a new file and send it back to review.

    A finalized submission is reopened: its consultant approval is cleared
    and it moves back to under_review.

    Raises:
        HTTPException 400: Invalid file or document type
        HTTPException 403: Not the owning vendor or an admin
        HTTPException 404: Submission not found, or unknown document without document_type
        TransitionRejected: Submission still a draft, or document not rejected
    """
    submission = get_submission_for_owner(db, submission_ref, actor, for_update=True)
    previous_status = SubmissionStatus(submission.submission_status)
    apply_submission_transition(previous_status, SubmissionAction.RESUBMIT_DOCUMENT, actor.role)

    document = resolve_resubmission_target(db, submission, document_id, document_type)
    current = DocumentStatus(document.status) if document is not None else None
    next_status = apply_document_transition(current, DocumentAction.RESUBMIT, actor.role)

    target_type = document.document_type if document is not None else parse_document_type(document_type).value

    incoming = await read_upload(file)
    stored = await store_incoming_file(db, storage, submission, target_type, incoming)

    now = utcnow()
    discarded = []
    if document is None:
        document = SubmissionDocument(
            document_type=target_type,
            document_name=get_document_label(target_type),
            sequence=max((d.sequence for d in submission.documents), default=0) + 1,
            is_mandatory=is_mandatory(target_type, submission.upload_month),
            version=1,
        )
        submission.documents.append(document)
        logger.info(
            f"Resubmission created missing document {target_type}",
            extra={"submission_id": submission.submission_id, "user_id": actor.id},
        )
    else:
        if document.file_path and document.file_path != stored.storage_key:
            discarded.append(document.file_path)
        document.version = (document.version or 1) + 1

    document.file_name = incoming.filename
    document.file_path = stored.storage_key
    document.file_size = stored.size_bytes
    document.mime_type = incoming.mime_type
    document.status = next_status.value
    document.consultant_remarks = None
    document.review_date = None
    document.reviewed_by_id = None
    document.upload_date = now
    document.resubmission_date = now
    db.flush()

    _close_ledger_entries(submission, document)

    if previous_status in FINAL_SUBMISSION_STATUSES:
        submission.is_approved = False
        submission.approval_date = None
        submission.approval_remarks = None
        submission.approved_by_id = None

    submission.submission_status = recompute_submission_status(
        previous_status, (d.status for d in submission.documents)
    ).value
    touch(submission)
    db.flush()

    log_document_activity(
        db,
        actor,
        "DOCUMENT_RESUBMITTED",
        document,
        request=request,
        description=f"Resubmitted {document.document_name} (version {document.version})",
    )
    documents_uploaded_total.labels(document_type=target_type).inc()

    events = record_notifications(db, document_resubmitted_events(db, submission, document, actor))
    return WorkflowResult(submission=submission, document=document, events=events, discarded_keys=discarded)
