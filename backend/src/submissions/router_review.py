"""Consultant review endpoints and vendor resubmission.

    POST /document-submissions/{submission_id}/documents/{document_id}/status
    POST /document-submissions/{submission_id}/final-approval
    POST /document-submissions/{submission_id}/documents/{document_id}/resubmit
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from auth.dependencies import OwnerUser, ReviewerUser
from database import get_db
from dependencies import get_storage, get_connection_registry
from domain.compliance.ports import ObjectStoragePort
from domain.notifications.ports import ConnectionRegistryPort
from .files import cleanup_uploads_on_failure
from .resubmission import resubmit_document
from .review import finalize_submission, review_document
from .router import schedule_side_effects
from .schemas import DocumentReviewRequest, FinalApprovalRequest, SubmissionResponse
from .transaction import workflow_transaction

router = APIRouter(prefix="/document-submissions", tags=["Document Review"])


@router.post(
    "/{submission_id}/documents/{document_id}/status",
    response_model=SubmissionResponse,
    summary="Approve or reject one document",
)
def update_document_status(
    submission_id: str,
    document_id: str,
    body: DocumentReviewRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: ReviewerUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Record a consultant decision on one document.

    Remarks are mandatory for both approval and rejection. A rejection
    notifies the vendor (in-app and email) after the change is committed.
    """
    with workflow_transaction(db, "review_document"):
        result = review_document(
            db, submission_id, document_id, body.status, body.remarks, current_user, request=request
        )
    schedule_side_effects(background_tasks, result, registry)
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.post(
    "/{submission_id}/final-approval",
    response_model=SubmissionResponse,
    summary="Finalize a submission",
)
def final_approval(
    submission_id: str,
    body: FinalApprovalRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: ReviewerUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Approve or reject the whole submission once every document has a decision."""
    with workflow_transaction(db, "finalize_submission"):
        result = finalize_submission(
            db, submission_id, body.is_approved, body.remarks, current_user, request=request
        )
    schedule_side_effects(background_tasks, result, registry)
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.post(
    "/{submission_id}/documents/{document_id}/resubmit",
    response_model=SubmissionResponse,
    summary="Resubmit a rejected document",
)
async def resubmit(
    submission_id: str,
    document_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: OwnerUser,
    file: UploadFile = File(...),
    document_type: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Upload a replacement for a rejected document.

    If ``document_id`` is unknown, ``document_type`` names the document to
    resubmit (or to create when the submission has none of that type).
    """
    async with cleanup_uploads_on_failure(db, storage):
        with workflow_transaction(db, "resubmit_document"):
            result = await resubmit_document(
                db, storage, submission_id, document_id, file, current_user,
                document_type=document_type, request=request,
            )
    schedule_side_effects(background_tasks, result, registry, storage)
    return SubmissionResponse.from_submission(result.submission, current_user)
