"""Document submission endpoints: lifecycle, listings and reports.

Static paths are declared before ``/{submission_id}`` so they are matched
first. Submission path parameters accept the UUID or the SUB-... id.
"""

from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from auth.dependencies import AdminUser, CurrentUser, OwnerUser, ReviewerUser, VendorUser
from database import get_db
from dependencies import get_storage, get_connection_registry
from domain.compliance.ports import ObjectStoragePort
from domain.notifications.ports import ConnectionRegistryPort
from notifications.service import dispatch_notifications
from .access import get_submission_for_viewer
from .files import cleanup_uploads_on_failure, discard_files, iter_file, open_document_file
from .queries import (
    find_submission_by_document,
    get_document_types,
    get_mis_summary,
    get_upload_periods,
    get_vendor_status,
    list_consultant_submissions,
    list_submissions_by_status,
    list_vendor_submissions,
)
from .review import bulk_finalize
from .schemas import (
    BulkActionRequest,
    BulkActionResponse,
    BulkFailure,
    DocumentTypesResponse,
    MISResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    UploadPeriodsResponse,
    VendorStatusResponse,
)
from .service import (
    WorkflowResult,
    create_submission,
    delete_document,
    start_review,
    submit_for_review,
    upload_document,
)
from .transaction import workflow_transaction

router = APIRouter(prefix="/document-submissions", tags=["Document Submissions"])


def schedule_side_effects(
    background_tasks: BackgroundTasks,
    result: WorkflowResult,
    registry: ConnectionRegistryPort,
    storage: Optional[ObjectStoragePort] = None,
) -> None:
    """Queue post-commit work: notification delivery and file cleanup."""
    if result.events:
        background_tasks.add_task(dispatch_notifications, result.events, registry)
    if storage is not None and result.discarded_keys:
        background_tasks.add_task(discard_files, storage, result.discarded_keys)


# Catalogue and reports

@router.get("/document-types", response_model=DocumentTypesResponse)
def document_types(
    current_user: CurrentUser,
    month: Optional[str] = Query(None, description="3-letter month code, e.g. Dec"),
):
    """Mandatory and optional document types for an upload month."""
    return get_document_types(month)


@router.get("/upload-periods", response_model=UploadPeriodsResponse)
def upload_periods(current_user: CurrentUser):
    return get_upload_periods()


@router.get("/mis", response_model=MISResponse)
def mis_summary(
    current_user: AdminUser,
    db: Session = Depends(get_db),
    year: Optional[int] = Query(None),
    month: Optional[str] = Query(None),
):
    """Submission counts, per-vendor totals and approval rate (ADMIN only)."""
    return get_mis_summary(db, year=year, month=month)


@router.get("/vendor-status", response_model=VendorStatusResponse)
def vendor_status(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    vendor_id: Optional[str] = Query(None, description="Required for consultants and admins"),
):
    return get_vendor_status(db, current_user, vendor_id)


# Listings

@router.get("/vendor/submissions", response_model=SubmissionListResponse)
def vendor_submissions(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    vendor_id: Optional[str] = Query(None, description="Required for consultants and admins"),
    year: Optional[int] = Query(None),
    month: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Matches submission id or invoice number"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List a vendor's submissions with filters and pagination."""
    return list_vendor_submissions(
        db, current_user, vendor_id=vendor_id, year=year, month=month,
        status_value=status_filter, search=search, page=page, limit=limit,
    )


@router.get("/consultant/submissions", response_model=SubmissionListResponse)
def consultant_submissions(
    current_user: ReviewerUser,
    db: Session = Depends(get_db),
    year: Optional[int] = Query(None),
    month: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    vendor_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List submissions of the consultant's assigned vendors (admins see all)."""
    return list_consultant_submissions(
        db, current_user, year=year, month=month, status_value=status_filter,
        vendor_id=vendor_id, page=page, limit=limit,
    )


@router.get("/status/{submission_status}", response_model=SubmissionListResponse)
def submissions_by_status(
    submission_status: str,
    current_user: ReviewerUser,
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return list_submissions_by_status(db, current_user, submission_status, page=page, limit=limit)


@router.get("/search/document/{document_id}", response_model=SubmissionResponse)
def search_by_document(document_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    """Find the submission containing a document."""
    submission = find_submission_by_document(db, current_user, document_id)
    return SubmissionResponse.from_submission(submission, current_user)


# Bulk actions

def _bulk(
    approve: bool,
    body: BulkActionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user,
    db: Session,
    registry: ConnectionRegistryPort,
) -> BulkActionResponse:
    action = "bulk_approve" if approve else "bulk_reject"
    with workflow_transaction(db, action):
        processed, failed, events = bulk_finalize(
            db, body.submission_ids, approve, body.remarks, current_user, request=request
        )
    if events:
        background_tasks.add_task(dispatch_notifications, events, registry)
    return BulkActionResponse(
        processed=processed,
        failed=[BulkFailure(submission_id=ref, error=error) for ref, error in failed],
    )


@router.post("/bulk-approve", response_model=BulkActionResponse)
def bulk_approve(
    body: BulkActionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: AdminUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Approve several submissions at once (ADMIN only)."""
    return _bulk(True, body, request, background_tasks, current_user, db, registry)


@router.post("/bulk-reject", response_model=BulkActionResponse)
def bulk_reject(
    body: BulkActionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: AdminUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Reject several submissions at once (ADMIN only). Remarks are required."""
    return _bulk(False, body, request, background_tasks, current_user, db, registry)


# Lifecycle

@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
def create(
    body: SubmissionCreate,
    request: Request,
    response: Response,
    current_user: VendorUser,
    db: Session = Depends(get_db),
):
    """Open a submission for an upload period (returns the existing draft if any)."""
    with workflow_transaction(db, "create_submission"):
        result = create_submission(
            db,
            current_user,
            upload_year=body.upload_year,
            upload_month=body.upload_month,
            invoice_no=body.invoice_no,
            work_location=body.work_location,
            consultant_name=body.consultant_name,
            consultant_email=body.consultant_email,
            request=request,
        )
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.get("/{submission_id}", response_model=SubmissionResponse)
def get_submission(submission_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    submission = get_submission_for_viewer(db, submission_id, current_user)
    return SubmissionResponse.from_submission(submission, current_user)


@router.get("/{submission_id}/documents/{document_id}/file", response_class=StreamingResponse)
async def download_document(
    submission_id: str,
    document_id: str,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
):
    """Stream a document's file to anyone who may view the submission."""
    submission = get_submission_for_viewer(db, submission_id, current_user)
    document = submission.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    stream = await open_document_file(storage, document)
    return StreamingResponse(
        iter_file(stream),
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{document.file_name}"'},
    )


@router.post("/{submission_id}/documents", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def upload(
    submission_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: OwnerUser,
    document_type: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Upload (or replace) one document of a draft submission.

    Example:
        curl -X POST .../document-submissions/SUB-2025-Jul-AB12CD/documents \\
             -H "Authorization: Bearer $TOKEN" \\
             -F "document_type=INVOICE" -F "file=@invoice.pdf"
    """
    async with cleanup_uploads_on_failure(db, storage):
        with workflow_transaction(db, "upload_document"):
            result = await upload_document(
                db, storage, submission_id, document_type, file, current_user, request=request
            )
    schedule_side_effects(background_tasks, result, registry, storage)
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.delete("/{submission_id}/documents/{document_id}", response_model=SubmissionResponse)
def remove_document(
    submission_id: str,
    document_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: OwnerUser,
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    with workflow_transaction(db, "delete_document"):
        result = delete_document(db, submission_id, document_id, current_user, request=request)
    schedule_side_effects(background_tasks, result, registry, storage)
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
def submit(
    submission_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: OwnerUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    """Submit a draft for review. All mandatory documents for the month must be present."""
    with workflow_transaction(db, "submit"):
        result = submit_for_review(db, submission_id, current_user, request=request)
    schedule_side_effects(background_tasks, result, registry)
    return SubmissionResponse.from_submission(result.submission, current_user)


@router.post("/{submission_id}/start-review", response_model=SubmissionResponse)
def begin_review(
    submission_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: ReviewerUser,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    with workflow_transaction(db, "start_review"):
        result = start_review(db, submission_id, current_user, request=request)
    schedule_side_effects(background_tasks, result, registry)
    return SubmissionResponse.from_submission(result.submission, current_user)
