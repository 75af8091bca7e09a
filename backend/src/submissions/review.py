"""Consultant review: per-document decisions, finalization, bulk actions.

All operations lock the submission row and rely on its optimistic version
counter, so two reviewers racing on one submission cannot both commit (the
loser gets StaleDataError, mapped to 409 by ``workflow_transaction``).
"""

import logging
import time
from typing import List, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from audit.service import log_from_request, log_document_activity
from domain.compliance.derivation import all_documents_reviewed, recompute_submission_status
from domain.compliance.validation import normalize_remarks
from domain.compliance.workflow import (
    DocumentAction,
    DocumentStatus,
    SubmissionAction,
    SubmissionStatus,
    TransitionRejected,
    apply_document_transition,
    apply_submission_transition,
)
from models.base import utcnow
from models.document_submission import DocumentSubmission, RejectedDocument, SubmissionDocument
from models.user import User
from notifications.service import (
    NotificationEvent,
    document_rejected_events,
    record_notifications,
    submission_finalized_events,
)
from observability.metrics import document_reviews_total, finalization_duration_seconds
from .access import find_submission, get_submission_for_reviewer
from .service import WorkflowResult, touch
from .transaction import CONCURRENT_MODIFICATION_MESSAGE

logger = logging.getLogger(__name__)

REMARKS_REQUIRED_MESSAGE = "Remarks are mandatory for both approval and rejection"
FINAL_REMARKS_REQUIRED_MESSAGE = "Please provide overall remarks. Remarks are mandatory for final approval."
NOT_ALL_REVIEWED_MESSAGE = "All documents must be approved or rejected before final approval"


def _record_rejection(
    submission: DocumentSubmission, document: SubmissionDocument, reason: str, actor: User
) -> RejectedDocument:
    entry = RejectedDocument(
        document_id=document.id,
        document_type=document.document_type,
        rejection_reason=reason,
        rejected_date=utcnow(),
        rejected_by_id=actor.id,
    )
    submission.rejected_documents.append(entry)
    return entry


def _apply_decision(
    submission: DocumentSubmission,
    document: SubmissionDocument,
    approve: bool,
    remarks: str,
    actor: User,
) -> None:
    action = DocumentAction.APPROVE if approve else DocumentAction.REJECT
    next_status = apply_document_transition(DocumentStatus(document.status), action, actor.role)

    document.status = next_status.value
    document.consultant_remarks = remarks
    document.review_date = utcnow()
    document.reviewed_by_id = actor.id

    if not approve:
        _record_rejection(submission, document, remarks, actor)


def review_document(
    db: Session,
    submission_ref: str,
    document_id: str,
    status_value: str,
    remarks: Optional[str],
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Approve or reject one document.

    The document decision, the rejection ledger, the recomputed submission
    status and the activity log entry are flushed together.

    Raises:
        HTTPException 400: Empty remarks, or status other than approved/rejected
        HTTPException 403: Not a reviewer, or a consultant not assigned to the vendor
        HTTPException 404: Submission or document not found
        TransitionRejected: Submission not open for review, or document not reviewable
    """
    if status_value not in (DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Status must be either 'approved' or 'rejected'",
        )

    submission = get_submission_for_reviewer(db, submission_ref, actor, for_update=True)

    remarks = normalize_remarks(remarks)
    if not remarks:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REMARKS_REQUIRED_MESSAGE)

    apply_submission_transition(
        SubmissionStatus(submission.submission_status), SubmissionAction.REVIEW_DOCUMENT, actor.role
    )

    document = submission.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    approve = status_value == DocumentStatus.APPROVED.value
    _apply_decision(submission, document, approve, remarks, actor)

    submission.submission_status = recompute_submission_status(
        submission.submission_status, (d.status for d in submission.documents)
    ).value
    touch(submission)
    db.flush()

    log_document_activity(
        db,
        actor,
        "DOCUMENT_APPROVED" if approve else "DOCUMENT_REJECTED",
        document,
        request=request,
        description=f"{'Approved' if approve else 'Rejected'} {document.document_name}: {remarks}",
    )
    document_reviews_total.labels(status=document.status).inc()

    events: List[NotificationEvent] = []
    if not approve:
        events = record_notifications(db, document_rejected_events(submission, document, actor))

    logger.info(
        f"Document reviewed: {document.document_type} -> {document.status}",
        extra={"submission_id": submission.submission_id, "document_id": document.id, "user_id": actor.id},
    )
    return WorkflowResult(submission=submission, document=document, events=events)


def finalize_submission(
    db: Session,
    submission_ref: str,
    is_approved: bool,
    remarks: Optional[str],
    actor: User,
    request: Optional[Request] = None,
) -> WorkflowResult:
    """Record the consultant's overall decision on a submission.

    Preconditions, checked before anything is changed:
    1. at least one document, and every document approved or rejected
    2. non-empty overall remarks

    Raises:
        HTTPException 400: A precondition failed
        TransitionRejected: Submission is a draft or already finalized
    """
    started = time.perf_counter()
    submission = get_submission_for_reviewer(db, submission_ref, actor, for_update=True)

    if not all_documents_reviewed(d.status for d in submission.documents):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NOT_ALL_REVIEWED_MESSAGE)

    remarks = normalize_remarks(remarks)
    if not remarks:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=FINAL_REMARKS_REQUIRED_MESSAGE)

    action = SubmissionAction.FINALIZE_APPROVE if is_approved else SubmissionAction.FINALIZE_REJECT
    next_status = apply_submission_transition(SubmissionStatus(submission.submission_status), action, actor.role)

    submission.submission_status = next_status.value
    submission.is_approved = bool(is_approved)
    submission.approval_date = utcnow()
    submission.approval_remarks = remarks
    submission.approved_by_id = actor.id
    touch(submission)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="SUBMISSION_FINALIZED",
        actor_id=actor.id,
        entity_type="submission",
        entity_id=submission.id,
        description=f"{'Approved' if is_approved else 'Rejected'} submission {submission.submission_id}",
        metadata={"submission_status": submission.submission_status, "remarks": remarks},
    )

    events = record_notifications(db, submission_finalized_events(submission, actor))
    finalization_duration_seconds.observe(time.perf_counter() - started)

    logger.info(
        f"Submission finalized: {submission.submission_id} -> {submission.submission_status}",
        extra={"submission_id": submission.submission_id, "user_id": actor.id},
    )
    return WorkflowResult(submission=submission, events=events)


def _bulk_finalize_one(
    db: Session,
    submission: DocumentSubmission,
    approve: bool,
    remarks: str,
    actor: User,
    request: Optional[Request],
) -> None:
    action = SubmissionAction.BULK_APPROVE if approve else SubmissionAction.BULK_REJECT
    next_status = apply_submission_transition(SubmissionStatus(submission.submission_status), action, actor.role)

    now = utcnow()
    for document in submission.documents:
        if approve and document.status != DocumentStatus.APPROVED.value:
            target = DocumentAction.APPROVE
        elif not approve and document.status not in (
            DocumentStatus.APPROVED.value,
            DocumentStatus.REJECTED.value,
            DocumentStatus.REQUIRES_RESUBMISSION.value,
        ):
            target = DocumentAction.REJECT
        else:
            continue
        _apply_decision(submission, document, target == DocumentAction.APPROVE, remarks, actor)

    submission.submission_status = next_status.value
    submission.is_approved = approve
    submission.approval_date = now
    submission.approval_remarks = remarks
    submission.approved_by_id = actor.id
    touch(submission)
    db.flush()

    log_from_request(
        db=db,
        request=request,
        action="SUBMISSION_BULK_APPROVED" if approve else "SUBMISSION_BULK_REJECTED",
        actor_id=actor.id,
        entity_type="submission",
        entity_id=submission.id,
        description=f"Bulk {'approved' if approve else 'rejected'} {submission.submission_id}",
        metadata={"remarks": remarks},
    )


def bulk_finalize(
    db: Session,
    submission_refs: List[str],
    approve: bool,
    remarks: Optional[str],
    actor: User,
    request: Optional[Request] = None,
):
    """Approve or reject many submissions at once (ADMIN).

    Each submission is processed in its own SAVEPOINT: a failure on one is
    reported in ``failed`` and does not affect the others.

    Returns:
        Tuple of (processed submission ids, failures as (id, error) pairs, events)
    """
    remarks = normalize_remarks(remarks)
    if not approve and not remarks:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Remarks are mandatory for bulk rejection",
        )
    if approve and not remarks:
        remarks = "Approved in bulk"

    processed: List[str] = []
    failed = []
    events: List[NotificationEvent] = []

    for ref in submission_refs:
        submission = find_submission(db, ref, for_update=True)
        if submission is None:
            failed.append((ref, "Submission not found"))
            continue

        try:
            with db.begin_nested():
                _bulk_finalize_one(db, submission, approve, remarks, actor, request)
        except TransitionRejected as e:
            failed.append((ref, e.reason))
            continue
        except StaleDataError:
            failed.append((ref, CONCURRENT_MODIFICATION_MESSAGE))
            continue

        processed.append(submission.submission_id)
        events.extend(record_notifications(db, submission_finalized_events(submission, actor)))

    logger.info(
        f"Bulk {'approve' if approve else 'reject'}: processed={len(processed)}, failed={len(failed)}",
        extra={"user_id": actor.id},
    )
    return processed, failed, events
