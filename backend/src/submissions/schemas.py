"""Pydantic schemas for document submission endpoints"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.compliance.derivation import derive_overall_status
from domain.compliance.document_types import get_document_label
from domain.compliance.workflow import SubmissionStatus, get_allowed_submission_actions


class SubmissionCreate(BaseModel):
    """Request schema for opening a submission for an upload period"""
    upload_year: int = Field(..., description="Upload year (2023-2035)")
    upload_month: str = Field(..., description="3-letter month code (Jan..Dec)")
    invoice_no: Optional[str] = Field(None, max_length=100)
    work_location: Optional[str] = Field(None, max_length=200)
    consultant_name: Optional[str] = Field(None, max_length=200)
    consultant_email: Optional[str] = Field(None, max_length=320)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "upload_year": 2025,
                "upload_month": "Jul",
                "invoice_no": "INV-2025-07-001",
            }
        }
    )


class DocumentReviewRequest(BaseModel):
    """Request schema for a per-document decision.

    Remarks are validated by the workflow (not here) so that empty remarks
    produce the workflow's 400 message rather than a schema error.
    """
    status: Literal["approved", "rejected"]
    remarks: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"status": "rejected", "remarks": "Bank statement is missing the salary credit page"}
        }
    )


class FinalApprovalRequest(BaseModel):
    is_approved: bool
    remarks: Optional[str] = None


class BulkActionRequest(BaseModel):
    """Request schema for bulk approve/reject (ADMIN)"""
    submission_ids: List[str] = Field(..., min_length=1, max_length=100)
    remarks: Optional[str] = None

    @field_validator("submission_ids")
    @classmethod
    def strip_ids(cls, value: List[str]) -> List[str]:
        return [v.strip() for v in value if v and v.strip()]


class BulkFailure(BaseModel):
    submission_id: str
    error: str


class BulkActionResponse(BaseModel):
    processed: List[str]
    failed: List[BulkFailure]


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_type: str
    document_label: str = ""
    document_name: str
    file_name: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    status: str
    consultant_remarks: Optional[str] = None
    is_mandatory: bool
    version: int
    upload_date: datetime
    review_date: Optional[datetime] = None
    reviewed_by_id: Optional[UUID] = None
    resubmission_date: Optional[datetime] = None

    @classmethod
    def from_document(cls, document) -> "DocumentResponse":
        response = cls.model_validate(document)
        response.document_label = get_document_label(document.document_type)
        return response


class ConsultantApproval(BaseModel):
    is_approved: bool
    approval_date: Optional[datetime] = None
    approval_remarks: Optional[str] = None
    approved_by_id: Optional[UUID] = None


class VendorSummary(BaseModel):
    id: UUID
    name: str
    email: str
    company_name: Optional[str] = None


class SubmissionResponse(BaseModel):
    """A submission with its documents and derived statuses.

    overall_status is derived from the document statuses on every response;
    allowed_actions lists what the requesting user may do next.
    """
    id: UUID
    submission_id: str
    vendor: VendorSummary
    upload_year: int
    upload_month: str
    submission_status: str
    overall_status: str
    allowed_actions: List[str]
    invoice_no: Optional[str] = None
    work_location: Optional[str] = None
    consultant_name: Optional[str] = None
    consultant_email: Optional[str] = None
    consultant_approval: ConsultantApproval
    submission_date: Optional[datetime] = None
    last_modified_date: datetime
    documents: List[DocumentResponse]

    @classmethod
    def from_submission(cls, submission, viewer=None) -> "SubmissionResponse":
        vendor = submission.vendor
        allowed = []
        if viewer is not None:
            allowed = [
                a.value
                for a in get_allowed_submission_actions(SubmissionStatus(submission.submission_status), viewer.role)
            ]
        return cls(
            id=submission.id,
            submission_id=submission.submission_id,
            vendor=VendorSummary(
                id=vendor.id, name=vendor.name, email=vendor.email, company_name=vendor.company_name
            ),
            upload_year=submission.upload_year,
            upload_month=submission.upload_month,
            submission_status=submission.submission_status,
            overall_status=derive_overall_status(d.status for d in submission.documents).value,
            allowed_actions=allowed,
            invoice_no=submission.invoice_no,
            work_location=submission.work_location,
            consultant_name=submission.consultant_name,
            consultant_email=submission.consultant_email,
            consultant_approval=ConsultantApproval(
                is_approved=submission.is_approved,
                approval_date=submission.approval_date,
                approval_remarks=submission.approval_remarks,
                approved_by_id=submission.approved_by_id,
            ),
            submission_date=submission.submission_date,
            last_modified_date=submission.last_modified_date,
            documents=[DocumentResponse.from_document(d) for d in submission.documents],
        )


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class DocumentTypeInfo(BaseModel):
    document_type: str
    label: str
    is_mandatory: bool
    is_one_time: bool = False


class DocumentTypesResponse(BaseModel):
    month: Optional[str]
    mandatory: List[DocumentTypeInfo]
    optional: List[DocumentTypeInfo]
    additional: List[DocumentTypeInfo]


class UploadPeriodsResponse(BaseModel):
    months: List[str]
    years: List[int]
    current_year: int
    current_month: str


class StatusCount(BaseModel):
    status: str
    count: int


class VendorSubmissionStats(BaseModel):
    vendor_id: UUID
    vendor_name: str
    company_name: Optional[str] = None
    total_submissions: int
    fully_approved: int
    rejected: int
    pending_review: int


class MISResponse(BaseModel):
    """Management summary across all submissions (ADMIN)"""
    total_submissions: int
    by_status: List[StatusCount]
    by_vendor: List[VendorSubmissionStats]
    approval_rate: float = Field(..., description="fully_approved / finalized submissions, in percent")
    document_counts: List[StatusCount]


class VendorStatusResponse(BaseModel):
    vendor_id: UUID
    total_submissions: int
    total_documents: int
    approved_documents: int
    rejected_documents: int
    pending_documents: int
    resubmitted_documents: int
    compliance_score: int = Field(..., description="round(approved / total documents * 100)")
    latest_submission: Optional[SubmissionResponse] = None
