"""Submission lookup with per-role access checks.

Every endpoint resolves its submission through one of these helpers, so the
ownership and consultant-assignment rules are enforced in one place:

- vendors may only touch their own submissions
- consultants may only touch submissions of vendors assigned to them
- admins may touch everything
"""

from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from auth.roles import UserRole
from models.document_submission import DocumentSubmission
from models.user import User


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None


def find_submission(db: Session, submission_ref: str, for_update: bool = False) -> Optional[DocumentSubmission]:
    """Find a submission by UUID or by its human-readable SUB-... id.

    Args:
        for_update: Lock the row (SELECT ... FOR UPDATE) for the rest of the transaction
    """
    query = db.query(DocumentSubmission)
    submission_uuid = _parse_uuid(submission_ref)
    if submission_uuid is not None:
        query = query.filter(DocumentSubmission.id == submission_uuid)
    else:
        query = query.filter(DocumentSubmission.submission_id == str(submission_ref))

    if for_update:
        query = query.with_for_update()
    return query.first()


def get_submission_or_404(db: Session, submission_ref: str, for_update: bool = False) -> DocumentSubmission:
    submission = find_submission(db, submission_ref, for_update=for_update)
    if submission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission


def is_assigned_consultant(db: Session, user: User, vendor_id) -> bool:
    """Check that the vendor is assigned to this consultant."""
    if user.role != UserRole.CONSULTANT.value:
        return False
    vendor_uuid = _parse_uuid(vendor_id)
    if vendor_uuid is None:
        return False
    return (
        db.query(User.id)
        .filter(User.id == vendor_uuid, User.assigned_consultant_id == user.id)
        .first()
    ) is not None


def check_consultant_assignment(db: Session, user: User, vendor_id) -> None:
    """Raise 403 unless an admin, or the consultant assigned to the vendor."""
    if user.role == UserRole.ADMIN.value:
        return
    if user.role == UserRole.CONSULTANT.value and is_assigned_consultant(db, user, vendor_id):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You are not assigned to review this vendor's submissions",
    )


def can_view_submission(db: Session, user: User, submission: DocumentSubmission) -> bool:
    if user.role == UserRole.ADMIN.value:
        return True
    if user.role == UserRole.VENDOR.value:
        return str(submission.vendor_id) == str(user.id)
    if user.role == UserRole.CONSULTANT.value:
        return is_assigned_consultant(db, user, submission.vendor_id)
    return False


def get_submission_for_viewer(db: Session, submission_ref: str, user: User) -> DocumentSubmission:
    """Resolve a submission the user may read (404 / 403)."""
    submission = get_submission_or_404(db, submission_ref)
    if not can_view_submission(db, user, submission):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this submission")
    return submission


def get_submission_for_owner(
    db: Session, submission_ref: str, user: User, for_update: bool = False
) -> DocumentSubmission:
    """Resolve a submission the user may change as its owner (vendor) or as an admin."""
    submission = get_submission_or_404(db, submission_ref, for_update=for_update)
    if user.role == UserRole.ADMIN.value:
        return submission
    if user.role == UserRole.VENDOR.value and str(submission.vendor_id) == str(user.id):
        return submission
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the submitting vendor can change this submission")


def get_submission_for_reviewer(
    db: Session, submission_ref: str, user: User, for_update: bool = False
) -> DocumentSubmission:
    """Resolve a submission the user may review.

    Raises:
        HTTPException 403: If the user is not a reviewer, or is a consultant
            not assigned to the submission's vendor
        HTTPException 404: If the submission does not exist
    """
    if user.role not in (UserRole.CONSULTANT.value, UserRole.ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only consultants and admins can review submissions",
        )
    submission = get_submission_or_404(db, submission_ref, for_update=for_update)
    check_consultant_assignment(db, user, submission.vendor_id)
    return submission
