"""Compliance domain - document catalogue, review workflow, status derivation, validation"""

from .document_types import (
    DocumentType,
    UploadMonth,
    DocumentRequirements,
    resolve_document_requirements,
    is_mandatory,
    is_allowed_for_month,
    check_mandatory_documents,
    get_document_label,
)
from .workflow import (
    DocumentStatus,
    SubmissionStatus,
    OverallStatus,
    DocumentAction,
    SubmissionAction,
    TransitionRejected,
    apply_document_transition,
    apply_submission_transition,
)
from .derivation import (
    derive_overall_status,
    recompute_submission_status,
    all_documents_reviewed,
)

__all__ = [
    "DocumentType",
    "UploadMonth",
    "DocumentRequirements",
    "resolve_document_requirements",
    "is_mandatory",
    "is_allowed_for_month",
    "check_mandatory_documents",
    "get_document_label",
    "DocumentStatus",
    "SubmissionStatus",
    "OverallStatus",
    "DocumentAction",
    "SubmissionAction",
    "TransitionRejected",
    "apply_document_transition",
    "apply_submission_transition",
    "derive_overall_status",
    "recompute_submission_status",
    "all_documents_reviewed",
]
