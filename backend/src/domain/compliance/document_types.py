"""Compliance document catalogue and mandatory-document resolver.

Document types fall into four groups:

    Monthly mandatory   required in every upload period (9 types)
    December only       required only for the December period
    Annual January      required only for the January period (currently none)
    One-time optional   uploadable in any single period, never repeated

ADDITIONAL_DOCUMENT may accompany any submission and is never mandatory.

The resolver is a pure function of the upload month; it does no I/O and is
shared by submit gating, upload validation and the document-types endpoint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple


class DocumentType(str, Enum):
    """Compliance document categories. Values are stored as TEXT."""
    # Monthly mandatory
    INVOICE = "INVOICE"
    FORM_T_MUSTER_ROLL = "FORM_T_MUSTER_ROLL"
    BANK_STATEMENT = "BANK_STATEMENT"
    ECR = "ECR"
    PF_COMBINED_CHALLAN = "PF_COMBINED_CHALLAN"
    PF_TRRN_DETAILS = "PF_TRRN_DETAILS"
    ESI_CONTRIBUTION_HISTORY = "ESI_CONTRIBUTION_HISTORY"
    ESI_CHALLAN = "ESI_CHALLAN"
    PROFESSIONAL_TAX_RETURNS = "PROFESSIONAL_TAX_RETURNS"
    # December only
    LABOUR_WELFARE_FUND = "LABOUR_WELFARE_FUND"
    # One-time optional
    VENDOR_AGREEMENT = "VENDOR_AGREEMENT"
    EPF_CODE_LETTER = "EPF_CODE_LETTER"
    EPF_FORM_5A = "EPF_FORM_5A"
    ESIC_REGISTRATION = "ESIC_REGISTRATION"
    PT_REGISTRATION = "PT_REGISTRATION"
    PT_ENROLLMENT = "PT_ENROLLMENT"
    CONTRACT_LABOUR_LICENSE = "CONTRACT_LABOUR_LICENSE"
    # Free-form supporting material
    ADDITIONAL_DOCUMENT = "ADDITIONAL_DOCUMENT"


class UploadMonth(str, Enum):
    """Upload period months, in calendar order."""
    JAN = "Jan"
    FEB = "Feb"
    MAR = "Mar"
    APR = "Apr"
    MAY = "May"
    JUN = "Jun"
    JUL = "Jul"
    AUG = "Aug"
    SEP = "Sep"
    OCT = "Oct"
    NOV = "Nov"
    DEC = "Dec"


MIN_UPLOAD_YEAR = 2023
MAX_UPLOAD_YEAR = 2035

MONTHLY_MANDATORY: Tuple[DocumentType, ...] = (
    DocumentType.INVOICE,
    DocumentType.FORM_T_MUSTER_ROLL,
    DocumentType.BANK_STATEMENT,
    DocumentType.ECR,
    DocumentType.PF_COMBINED_CHALLAN,
    DocumentType.PF_TRRN_DETAILS,
    DocumentType.ESI_CONTRIBUTION_HISTORY,
    DocumentType.ESI_CHALLAN,
    DocumentType.PROFESSIONAL_TAX_RETURNS,
)

DECEMBER_ONLY_MANDATORY: Tuple[DocumentType, ...] = (
    DocumentType.LABOUR_WELFARE_FUND,
)

ANNUAL_JANUARY_MANDATORY: Tuple[DocumentType, ...] = ()

ONE_TIME_OPTIONAL: Tuple[DocumentType, ...] = (
    DocumentType.VENDOR_AGREEMENT,
    DocumentType.EPF_CODE_LETTER,
    DocumentType.EPF_FORM_5A,
    DocumentType.ESIC_REGISTRATION,
    DocumentType.PT_REGISTRATION,
    DocumentType.PT_ENROLLMENT,
    DocumentType.CONTRACT_LABOUR_LICENSE,
)

DOCUMENT_TYPE_LABELS = {
    DocumentType.INVOICE: "Invoice",
    DocumentType.FORM_T_MUSTER_ROLL: "Form T Combined Muster Roll cum Register of Wages",
    DocumentType.BANK_STATEMENT: "Bank Statement (Salary Credit Proof)",
    DocumentType.ECR: "Electronic Challan cum Return (ECR)",
    DocumentType.PF_COMBINED_CHALLAN: "PF Combined Challan",
    DocumentType.PF_TRRN_DETAILS: "PF TRRN Details",
    DocumentType.ESI_CONTRIBUTION_HISTORY: "ESI Contribution History Statement",
    DocumentType.ESI_CHALLAN: "ESI Challan",
    DocumentType.PROFESSIONAL_TAX_RETURNS: "Professional Tax Returns",
    DocumentType.LABOUR_WELFARE_FUND: "Labour Welfare Fund",
    DocumentType.VENDOR_AGREEMENT: "Vendor Agreement",
    DocumentType.EPF_CODE_LETTER: "EPF Code Allotment Letter",
    DocumentType.EPF_FORM_5A: "EPF Form 5A",
    DocumentType.ESIC_REGISTRATION: "ESIC Registration Certificate",
    DocumentType.PT_REGISTRATION: "Professional Tax Registration Certificate",
    DocumentType.PT_ENROLLMENT: "Professional Tax Enrollment Certificate",
    DocumentType.CONTRACT_LABOUR_LICENSE: "Contract Labour License",
    DocumentType.ADDITIONAL_DOCUMENT: "Additional Document",
}


@dataclass(frozen=True)
class DocumentRequirements:
    """Resolver output for one upload month.

    Attributes:
        mandatory: Types that must be present before the submission can be submitted
        optional: One-time optional types the vendor may attach
    """
    mandatory: Tuple[DocumentType, ...]
    optional: Tuple[DocumentType, ...]


def parse_month(month: Optional[str]) -> Optional[UploadMonth]:
    """Return the UploadMonth for a 3-letter code, or None if unrecognized."""
    if not month:
        return None
    try:
        return UploadMonth(month.strip().capitalize())
    except ValueError:
        return None


def resolve_document_requirements(month: Optional[str]) -> DocumentRequirements:
    """Resolve mandatory and optional document types for an upload month.

    An unrecognized month code gets the monthly set only.

    Example:
        >>> len(resolve_document_requirements("Jul").mandatory)
        9
        >>> DocumentType.LABOUR_WELFARE_FUND in resolve_document_requirements("Dec").mandatory
        True
    """
    upload_month = parse_month(month)

    mandatory = list(MONTHLY_MANDATORY)
    if upload_month == UploadMonth.DEC:
        mandatory.extend(DECEMBER_ONLY_MANDATORY)
    if upload_month == UploadMonth.JAN:
        mandatory.extend(ANNUAL_JANUARY_MANDATORY)

    return DocumentRequirements(mandatory=tuple(mandatory), optional=ONE_TIME_OPTIONAL)


def is_mandatory(document_type: str, month: Optional[str]) -> bool:
    """Check whether a document type is mandatory for the given month."""
    try:
        doc_type = DocumentType(document_type)
    except ValueError:
        return False
    return doc_type in resolve_document_requirements(month).mandatory


def is_allowed_for_month(document_type: str, month: Optional[str]) -> bool:
    """Check whether a document type may be attached to a submission for the month."""
    try:
        doc_type = DocumentType(document_type)
    except ValueError:
        return False
    if doc_type == DocumentType.ADDITIONAL_DOCUMENT:
        return True
    requirements = resolve_document_requirements(month)
    return doc_type in requirements.mandatory or doc_type in requirements.optional


def check_mandatory_documents(
    uploaded_types: Iterable[str],
    month: Optional[str],
) -> Tuple[bool, List[str], List[str]]:
    """Compare uploaded document types against the month's mandatory set.

    Args:
        uploaded_types: Document type values present in the submission
        month: Upload month code

    Returns:
        Tuple of (all_uploaded, missing, required), with missing and required
        listed in catalogue order
    """
    present = {str(getattr(t, "value", t)) for t in uploaded_types}
    required = [t.value for t in resolve_document_requirements(month).mandatory]
    missing = [t for t in required if t not in present]
    return len(missing) == 0, missing, required


def get_document_label(document_type: str) -> str:
    """Human-readable label for a document type (falls back to the raw value)."""
    try:
        return DOCUMENT_TYPE_LABELS[DocumentType(document_type)]
    except ValueError:
        return document_type
