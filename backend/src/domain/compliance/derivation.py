"""Submission status derivation from per-document statuses.

Two derivations live here and nowhere else:

- derive_overall_status: the display status shown to every role and
  returned on each submission response.
- recompute_submission_status: the persisted submission_status, updated in
  the same transaction as each document decision.
"""

from typing import Iterable, List, Union

from .workflow import (
    DocumentStatus,
    SubmissionStatus,
    OverallStatus,
    FINAL_SUBMISSION_STATUSES,
    REVIEWED_DOCUMENT_STATUSES,
)

StatusValue = Union[str, DocumentStatus]

_REJECTED_LIKE = {
    DocumentStatus.REJECTED.value,
    DocumentStatus.REQUIRES_RESUBMISSION.value,
}
# fully_approved can appear when a submission status is fed in alongside documents
_APPROVED_LIKE = {
    DocumentStatus.APPROVED.value,
    SubmissionStatus.FULLY_APPROVED.value,
}
_IN_FLIGHT = {
    DocumentStatus.PENDING.value,
    DocumentStatus.UNDER_REVIEW.value,
    SubmissionStatus.SUBMITTED.value,
    OverallStatus.IN_PROGRESS.value,
}


def _values(statuses: Iterable[StatusValue]) -> List[str]:
    return [getattr(s, "value", s) for s in statuses]


def derive_overall_status(statuses: Iterable[StatusValue]) -> OverallStatus:
    """Derive the display status for a submission.

    Precedence (highest first):
        1. any resubmitted                        -> in_progress
        2. any rejected / requires_resubmission   -> pending
        3. all approved / fully_approved          -> approved
        4. any pending / under_review / submitted -> in_progress
        5. otherwise                              -> in_progress

    Example:
        >>> derive_overall_status(["approved", "rejected"])
        <OverallStatus.PENDING: 'pending'>
    """
    values = _values(statuses)

    if DocumentStatus.RESUBMITTED.value in values:
        return OverallStatus.IN_PROGRESS
    if any(v in _REJECTED_LIKE for v in values):
        return OverallStatus.PENDING
    if values and all(v in _APPROVED_LIKE for v in values):
        return OverallStatus.APPROVED
    if any(v in _IN_FLIGHT for v in values):
        return OverallStatus.IN_PROGRESS
    return OverallStatus.IN_PROGRESS


def all_documents_reviewed(statuses: Iterable[StatusValue]) -> bool:
    """True when there is at least one document and every one is approved or rejected."""
    values = _values(statuses)
    reviewed = {s.value for s in REVIEWED_DOCUMENT_STATUSES}
    return bool(values) and all(v in reviewed for v in values)


def recompute_submission_status(
    current: Union[str, SubmissionStatus],
    statuses: Iterable[StatusValue],
) -> SubmissionStatus:
    """Recompute the persisted submission status after a document change.

    A draft stays a draft. A finalized submission only reopens when one of
    its documents has been resubmitted. While review is open, an approved
    document without any outstanding rejection leaves the submission
    partially_approved until a reviewer finalizes it.
    """
    current_status = SubmissionStatus(getattr(current, "value", current))
    values = _values(statuses)

    if current_status == SubmissionStatus.DRAFT:
        return SubmissionStatus.DRAFT
    if DocumentStatus.RESUBMITTED.value in values:
        return SubmissionStatus.UNDER_REVIEW
    if current_status in FINAL_SUBMISSION_STATUSES:
        return current_status
    if any(v in _REJECTED_LIKE for v in values):
        return SubmissionStatus.REQUIRES_RESUBMISSION
    if DocumentStatus.APPROVED.value in values:
        return SubmissionStatus.PARTIALLY_APPROVED
    if DocumentStatus.UNDER_REVIEW.value in values or current_status == SubmissionStatus.UNDER_REVIEW:
        return SubmissionStatus.UNDER_REVIEW
    return SubmissionStatus.SUBMITTED
