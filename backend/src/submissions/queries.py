"""Read-side queries: submission listings, search, catalogue and reports."""

import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from auth.roles import UserRole
from domain.compliance.document_types import (
    DocumentType,
    MAX_UPLOAD_YEAR,
    MIN_UPLOAD_YEAR,
    ONE_TIME_OPTIONAL,
    UploadMonth,
    get_document_label,
    parse_month,
    resolve_document_requirements,
)
from domain.compliance.workflow import DocumentStatus, SubmissionStatus
from models.document_submission import DocumentSubmission, SubmissionDocument
from models.user import User
from .access import check_consultant_assignment, can_view_submission
from .schemas import (
    DocumentTypeInfo,
    DocumentTypesResponse,
    MISResponse,
    StatusCount,
    SubmissionListResponse,
    SubmissionResponse,
    UploadPeriodsResponse,
    VendorStatusResponse,
    VendorSubmissionStats,
)


def _parse_vendor_id(vendor_id: Optional[str]) -> Optional[UUID]:
    if vendor_id is None:
        return None
    try:
        return UUID(str(vendor_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid vendor_id")


def _normalize_month(month: Optional[str]) -> Optional[str]:
    if not month:
        return None
    parsed = parse_month(month)
    if parsed is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid month '{month}'")
    return parsed.value


def _normalize_status(status_value: Optional[str]) -> Optional[str]:
    if not status_value:
        return None
    try:
        return SubmissionStatus(status_value).value
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status '{status_value}'",
        )


def _apply_filters(query, year: Optional[int], month: Optional[str], status_value: Optional[str]):
    if year is not None:
        query = query.filter(DocumentSubmission.upload_year == year)
    month = _normalize_month(month)
    if month:
        query = query.filter(DocumentSubmission.upload_month == month)
    status_value = _normalize_status(status_value)
    if status_value:
        query = query.filter(DocumentSubmission.submission_status == status_value)
    return query


def _paginate(query, viewer: User, page: int, limit: int) -> SubmissionListResponse:
    total = query.count()
    submissions = (
        query.options(selectinload(DocumentSubmission.documents), selectinload(DocumentSubmission.vendor))
        .order_by(
            DocumentSubmission.upload_year.desc(),
            DocumentSubmission.last_modified_date.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return SubmissionListResponse(
        submissions=[SubmissionResponse.from_submission(s, viewer) for s in submissions],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


def list_vendor_submissions(
    db: Session,
    viewer: User,
    vendor_id: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[str] = None,
    status_value: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> SubmissionListResponse:
    """List one vendor's submissions.

    Vendors always see their own; consultants and admins name the vendor.
    """
    if viewer.role == UserRole.VENDOR.value:
        target_vendor = viewer.id
    else:
        target_vendor = _parse_vendor_id(vendor_id)
        if target_vendor is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="vendor_id is required for consultants and admins",
            )
        check_consultant_assignment(db, viewer, target_vendor)

    query = db.query(DocumentSubmission).filter(DocumentSubmission.vendor_id == target_vendor)
    query = _apply_filters(query, year, month, status_value)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                DocumentSubmission.submission_id.ilike(pattern),
                DocumentSubmission.invoice_no.ilike(pattern),
            )
        )

    return _paginate(query, viewer, page, limit)


def _reviewer_scope(db: Session, viewer: User):
    """Base query limited to what a reviewer may see (admins see everything)."""
    query = db.query(DocumentSubmission)
    if viewer.role == UserRole.CONSULTANT.value:
        assigned = select(User.id).where(User.assigned_consultant_id == viewer.id)
        query = query.filter(DocumentSubmission.vendor_id.in_(assigned))
    return query


def list_consultant_submissions(
    db: Session,
    viewer: User,
    year: Optional[int] = None,
    month: Optional[str] = None,
    status_value: Optional[str] = None,
    vendor_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> SubmissionListResponse:
    """Submissions of the consultant's assigned vendors (drafts excluded)."""
    query = _reviewer_scope(db, viewer).filter(
        DocumentSubmission.submission_status != SubmissionStatus.DRAFT.value
    )
    target_vendor = _parse_vendor_id(vendor_id)
    if target_vendor is not None:
        check_consultant_assignment(db, viewer, target_vendor)
        query = query.filter(DocumentSubmission.vendor_id == target_vendor)
    query = _apply_filters(query, year, month, status_value)
    return _paginate(query, viewer, page, limit)


def list_submissions_by_status(
    db: Session, viewer: User, status_value: str, page: int = 1, limit: int = 10
) -> SubmissionListResponse:
    query = _apply_filters(_reviewer_scope(db, viewer), None, None, status_value)
    return _paginate(query, viewer, page, limit)


def find_submission_by_document(db: Session, viewer: User, document_id: str) -> DocumentSubmission:
    """Find the submission that contains a document."""
    try:
        document_uuid = UUID(str(document_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    submission = (
        db.query(DocumentSubmission)
        .join(SubmissionDocument, SubmissionDocument.document_submission_id == DocumentSubmission.id)
        .filter(SubmissionDocument.id == document_uuid)
        .first()
    )
    if submission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    if not can_view_submission(db, viewer, submission):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this submission")
    return submission


def _type_info(document_type: DocumentType, mandatory: bool) -> DocumentTypeInfo:
    return DocumentTypeInfo(
        document_type=document_type.value,
        label=get_document_label(document_type.value),
        is_mandatory=mandatory,
        is_one_time=document_type in ONE_TIME_OPTIONAL,
    )


def get_document_types(month: Optional[str]) -> DocumentTypesResponse:
    """Document catalogue for a month, from the mandatory-document resolver."""
    month = _normalize_month(month)
    requirements = resolve_document_requirements(month)
    return DocumentTypesResponse(
        month=month,
        mandatory=[_type_info(t, True) for t in requirements.mandatory],
        optional=[_type_info(t, False) for t in requirements.optional],
        additional=[_type_info(DocumentType.ADDITIONAL_DOCUMENT, False)],
    )


def get_upload_periods(now: Optional[datetime] = None) -> UploadPeriodsResponse:
    now = now or datetime.now(timezone.utc)
    months = [m.value for m in UploadMonth]
    return UploadPeriodsResponse(
        months=months,
        years=list(range(MIN_UPLOAD_YEAR, MAX_UPLOAD_YEAR + 1)),
        current_year=now.year,
        current_month=months[now.month - 1],
    )


def _status_counts(rows) -> List[StatusCount]:
    return [StatusCount(status=s, count=c) for s, c in sorted(rows, key=lambda r: r[0])]


def get_mis_summary(db: Session, year: Optional[int] = None, month: Optional[str] = None) -> MISResponse:
    """Management summary across all vendors (ADMIN)."""
    base = _apply_filters(db.query(DocumentSubmission), year, month, None)
    submission_ids = select(base.with_entities(DocumentSubmission.id).subquery().c.id)

    by_status = (
        base.with_entities(DocumentSubmission.submission_status, func.count(DocumentSubmission.id))
        .group_by(DocumentSubmission.submission_status)
        .all()
    )
    counts = dict(by_status)
    total = sum(counts.values())
    approved = counts.get(SubmissionStatus.FULLY_APPROVED.value, 0)
    finalized = approved + counts.get(SubmissionStatus.REJECTED.value, 0)

    document_counts = (
        db.query(SubmissionDocument.status, func.count(SubmissionDocument.id))
        .filter(SubmissionDocument.document_submission_id.in_(submission_ids))
        .group_by(SubmissionDocument.status)
        .all()
    )

    per_vendor_rows = (
        base.join(User, User.id == DocumentSubmission.vendor_id)
        .with_entities(
            User.id, User.name, User.company_name,
            DocumentSubmission.submission_status, func.count(DocumentSubmission.id),
        )
        .group_by(User.id, User.name, User.company_name, DocumentSubmission.submission_status)
        .all()
    )
    vendors = {}
    for vendor_id, name, company, submission_status, count in per_vendor_rows:
        stats = vendors.setdefault(
            vendor_id,
            VendorSubmissionStats(
                vendor_id=vendor_id, vendor_name=name, company_name=company,
                total_submissions=0, fully_approved=0, rejected=0, pending_review=0,
            ),
        )
        stats.total_submissions += count
        if submission_status == SubmissionStatus.FULLY_APPROVED.value:
            stats.fully_approved += count
        elif submission_status == SubmissionStatus.REJECTED.value:
            stats.rejected += count
        elif submission_status != SubmissionStatus.DRAFT.value:
            stats.pending_review += count

    return MISResponse(
        total_submissions=total,
        by_status=_status_counts(by_status),
        by_vendor=sorted(vendors.values(), key=lambda v: v.vendor_name),
        approval_rate=round(approved / finalized * 100, 2) if finalized else 0.0,
        document_counts=_status_counts(document_counts),
    )


def get_vendor_status(db: Session, viewer: User, vendor_id: Optional[str] = None) -> VendorStatusResponse:
    """Document totals and compliance score for one vendor."""
    if viewer.role == UserRole.VENDOR.value:
        target_vendor = viewer.id
    else:
        target_vendor = _parse_vendor_id(vendor_id)
        if target_vendor is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="vendor_id is required for consultants and admins",
            )
        check_consultant_assignment(db, viewer, target_vendor)

    submissions = (
        db.query(DocumentSubmission)
        .options(selectinload(DocumentSubmission.documents))
        .filter(DocumentSubmission.vendor_id == target_vendor)
        .order_by(DocumentSubmission.last_modified_date.desc())
        .all()
    )

    statuses = [d.status for s in submissions for d in s.documents]
    total, approved, rejected, pending, resubmitted = _document_totals(statuses)

    return VendorStatusResponse(
        vendor_id=target_vendor,
        total_submissions=len(submissions),
        total_documents=total,
        approved_documents=approved,
        rejected_documents=rejected,
        pending_documents=pending,
        resubmitted_documents=resubmitted,
        compliance_score=round(approved / total * 100) if total else 0,
        latest_submission=SubmissionResponse.from_submission(submissions[0], viewer) if submissions else None,
    )


def _document_totals(statuses: List[str]) -> Tuple[int, int, int, int, int]:
    rejected_like = (DocumentStatus.REJECTED.value, DocumentStatus.REQUIRES_RESUBMISSION.value)
    pending_like = (DocumentStatus.PENDING.value, DocumentStatus.UPLOADED.value, DocumentStatus.UNDER_REVIEW.value)
    return (
        len(statuses),
        sum(1 for s in statuses if s == DocumentStatus.APPROVED.value),
        sum(1 for s in statuses if s in rejected_like),
        sum(1 for s in statuses if s in pending_like),
        sum(1 for s in statuses if s == DocumentStatus.RESUBMITTED.value),
    )
