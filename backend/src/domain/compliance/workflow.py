"""Review workflow state machine for submissions and their documents.

Every status change in the review workflow goes through this module. The
transition tables are keyed by (current state, action) and list the roles
allowed to perform the action plus the resulting state:

Document flow:
    (new) -UPLOAD-> pending -MARK_UNDER_REVIEW-> under_review
    pending|uploaded|under_review|resubmitted -APPROVE|REJECT-> approved|rejected
    approved <-REJECT/APPROVE-> rejected   (reviewer changes a decision)
    rejected|requires_resubmission -RESUBMIT-> resubmitted

Submission flow:
    draft -SUBMIT-> submitted -START_REVIEW-> under_review
    open review states -FINALIZE_APPROVE|FINALIZE_REJECT-> fully_approved|rejected
    rejected|fully_approved -RESUBMIT_DOCUMENT-> under_review

Rejections distinguish a role that may never perform the action (forbidden,
HTTP 403) from a state in which the action is not allowed (HTTP 400).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from auth.roles import UserRole


class DocumentStatus(str, Enum):
    """Per-document review status."""
    PENDING = "pending"
    UPLOADED = "uploaded"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESUBMITTED = "resubmitted"
    REQUIRES_RESUBMISSION = "requires_resubmission"


class SubmissionStatus(str, Enum):
    """Persisted submission status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    PARTIALLY_APPROVED = "partially_approved"
    FULLY_APPROVED = "fully_approved"
    REJECTED = "rejected"
    REQUIRES_RESUBMISSION = "requires_resubmission"


class OverallStatus(str, Enum):
    """Display status derived from the document statuses."""
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    APPROVED = "approved"


class DocumentAction(str, Enum):
    UPLOAD = "upload"
    MARK_UNDER_REVIEW = "mark_under_review"
    APPROVE = "approve"
    REJECT = "reject"
    RESUBMIT = "resubmit"


class SubmissionAction(str, Enum):
    SUBMIT = "submit"
    EDIT_DOCUMENTS = "edit_documents"
    START_REVIEW = "start_review"
    REVIEW_DOCUMENT = "review_document"
    RESUBMIT_DOCUMENT = "resubmit_document"
    FINALIZE_APPROVE = "finalize_approve"
    FINALIZE_REJECT = "finalize_reject"
    BULK_APPROVE = "bulk_approve"
    BULK_REJECT = "bulk_reject"


# Statuses in which a document has received a reviewer decision
REVIEWED_DOCUMENT_STATUSES = frozenset({DocumentStatus.APPROVED, DocumentStatus.REJECTED})

FINAL_SUBMISSION_STATUSES = frozenset({SubmissionStatus.FULLY_APPROVED, SubmissionStatus.REJECTED})

OPEN_REVIEW_STATUSES = (
    SubmissionStatus.SUBMITTED,
    SubmissionStatus.UNDER_REVIEW,
    SubmissionStatus.PARTIALLY_APPROVED,
    SubmissionStatus.REQUIRES_RESUBMISSION,
)

OWNERS = frozenset({UserRole.VENDOR, UserRole.ADMIN})
REVIEWERS = frozenset({UserRole.CONSULTANT, UserRole.ADMIN})
ADMINS = frozenset({UserRole.ADMIN})


@dataclass(frozen=True)
class Transition:
    """A permitted (state, action) pair: who may perform it and where it leads."""
    roles: FrozenSet[UserRole]
    next_state: Union[DocumentStatus, SubmissionStatus]


class TransitionRejected(Exception):
    """Raised when a workflow action is not permitted.

    Attributes:
        reason: User-facing explanation
        forbidden: True when the actor's role can never perform the action
    """

    def __init__(self, reason: str, forbidden: bool = False):
        super().__init__(reason)
        self.reason = reason
        self.forbidden = forbidden


DocumentState = Optional[DocumentStatus]

DOCUMENT_TRANSITIONS: Dict[Tuple[DocumentState, DocumentAction], Transition] = {
    (None, DocumentAction.UPLOAD): Transition(OWNERS, DocumentStatus.PENDING),
    (DocumentStatus.PENDING, DocumentAction.UPLOAD): Transition(OWNERS, DocumentStatus.PENDING),
    (DocumentStatus.UPLOADED, DocumentAction.UPLOAD): Transition(OWNERS, DocumentStatus.PENDING),

    (DocumentStatus.PENDING, DocumentAction.MARK_UNDER_REVIEW): Transition(REVIEWERS, DocumentStatus.UNDER_REVIEW),
    (DocumentStatus.UPLOADED, DocumentAction.MARK_UNDER_REVIEW): Transition(REVIEWERS, DocumentStatus.UNDER_REVIEW),

    (DocumentStatus.PENDING, DocumentAction.APPROVE): Transition(REVIEWERS, DocumentStatus.APPROVED),
    (DocumentStatus.UPLOADED, DocumentAction.APPROVE): Transition(REVIEWERS, DocumentStatus.APPROVED),
    (DocumentStatus.UNDER_REVIEW, DocumentAction.APPROVE): Transition(REVIEWERS, DocumentStatus.APPROVED),
    (DocumentStatus.RESUBMITTED, DocumentAction.APPROVE): Transition(REVIEWERS, DocumentStatus.APPROVED),
    (DocumentStatus.REJECTED, DocumentAction.APPROVE): Transition(REVIEWERS, DocumentStatus.APPROVED),

    (DocumentStatus.PENDING, DocumentAction.REJECT): Transition(REVIEWERS, DocumentStatus.REJECTED),
    (DocumentStatus.UPLOADED, DocumentAction.REJECT): Transition(REVIEWERS, DocumentStatus.REJECTED),
    (DocumentStatus.UNDER_REVIEW, DocumentAction.REJECT): Transition(REVIEWERS, DocumentStatus.REJECTED),
    (DocumentStatus.RESUBMITTED, DocumentAction.REJECT): Transition(REVIEWERS, DocumentStatus.REJECTED),
    (DocumentStatus.APPROVED, DocumentAction.REJECT): Transition(REVIEWERS, DocumentStatus.REJECTED),

    # A missing document may be created directly in the resubmitted state
    (None, DocumentAction.RESUBMIT): Transition(OWNERS, DocumentStatus.RESUBMITTED),
    (DocumentStatus.REJECTED, DocumentAction.RESUBMIT): Transition(OWNERS, DocumentStatus.RESUBMITTED),
    (DocumentStatus.REQUIRES_RESUBMISSION, DocumentAction.RESUBMIT): Transition(OWNERS, DocumentStatus.RESUBMITTED),
}

SUBMISSION_TRANSITIONS: Dict[Tuple[SubmissionStatus, SubmissionAction], Transition] = {
    (SubmissionStatus.DRAFT, SubmissionAction.SUBMIT): Transition(OWNERS, SubmissionStatus.SUBMITTED),
    (SubmissionStatus.DRAFT, SubmissionAction.EDIT_DOCUMENTS): Transition(OWNERS, SubmissionStatus.DRAFT),
    (SubmissionStatus.SUBMITTED, SubmissionAction.START_REVIEW): Transition(REVIEWERS, SubmissionStatus.UNDER_REVIEW),

    (SubmissionStatus.REJECTED, SubmissionAction.RESUBMIT_DOCUMENT): Transition(OWNERS, SubmissionStatus.UNDER_REVIEW),
    (SubmissionStatus.FULLY_APPROVED, SubmissionAction.RESUBMIT_DOCUMENT): Transition(OWNERS, SubmissionStatus.UNDER_REVIEW),
}

# Review, finalization and resubmission share the open review states
for _state in OPEN_REVIEW_STATUSES:
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.REVIEW_DOCUMENT)] = Transition(REVIEWERS, _state)
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.RESUBMIT_DOCUMENT)] = Transition(OWNERS, _state)
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.FINALIZE_APPROVE)] = Transition(
        REVIEWERS, SubmissionStatus.FULLY_APPROVED
    )
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.FINALIZE_REJECT)] = Transition(
        REVIEWERS, SubmissionStatus.REJECTED
    )
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.BULK_APPROVE)] = Transition(
        ADMINS, SubmissionStatus.FULLY_APPROVED
    )
    SUBMISSION_TRANSITIONS[(_state, SubmissionAction.BULK_REJECT)] = Transition(
        ADMINS, SubmissionStatus.REJECTED
    )

STATE_REJECTION_MESSAGES = {
    DocumentAction.UPLOAD: "A document of this type is already {state} and cannot be replaced",
    DocumentAction.APPROVE: "Document is {state} and cannot be approved",
    DocumentAction.REJECT: "Document is {state} and cannot be rejected",
    DocumentAction.RESUBMIT: "Only rejected documents can be resubmitted",
    SubmissionAction.SUBMIT: "Submission is {state} and cannot be submitted again",
    SubmissionAction.EDIT_DOCUMENTS: "Documents can only be changed while the submission is a draft (status: {state})",
    SubmissionAction.START_REVIEW: "Submission is {state}; only submitted submissions can be taken into review",
    SubmissionAction.REVIEW_DOCUMENT: "Submission is not open for review (status: {state})",
    SubmissionAction.RESUBMIT_DOCUMENT: "Submission is {state}; documents can only be resubmitted after review has started",
    SubmissionAction.FINALIZE_APPROVE: "Submission cannot be finalized in status {state}",
    SubmissionAction.FINALIZE_REJECT: "Submission cannot be finalized in status {state}",
    SubmissionAction.BULK_APPROVE: "Submission cannot be approved in status {state}",
    SubmissionAction.BULK_REJECT: "Submission cannot be rejected in status {state}",
}


def _roles_for(table: dict, action) -> FrozenSet[UserRole]:
    roles = set()
    for (_, table_action), transition in table.items():
        if table_action == action:
            roles |= transition.roles
    return frozenset(roles)


def _coerce_role(role) -> Optional[UserRole]:
    try:
        return UserRole(role)
    except ValueError:
        return None


def _apply(table: dict, state, action, role, subject: str):
    actor_role = _coerce_role(role)
    if actor_role is None or actor_role not in _roles_for(table, action):
        raise TransitionRejected(
            f"Role '{getattr(role, 'value', role)}' is not permitted to {action.value.replace('_', ' ')} {subject}",
            forbidden=True,
        )

    transition = table.get((state, action))
    if transition is None:
        state_label = state.value if state is not None else "missing"
        template = STATE_REJECTION_MESSAGES.get(
            action, f"Cannot {action.value.replace('_', ' ')} {subject} in status {{state}}"
        )
        raise TransitionRejected(template.format(state=state_label))

    if actor_role not in transition.roles:
        raise TransitionRejected(
            f"Role '{actor_role.value}' cannot {action.value.replace('_', ' ')} {subject} "
            f"in status {state.value if state is not None else 'missing'}",
            forbidden=True,
        )

    return transition.next_state


def apply_document_transition(
    current: DocumentState,
    action: DocumentAction,
    role: Union[UserRole, str],
) -> DocumentStatus:
    """Validate a document action and return the resulting status.

    Args:
        current: Current document status (None for a document that does not exist yet)
        action: Action being performed
        role: Role of the acting user

    Returns:
        DocumentStatus: Status the document moves to

    Raises:
        TransitionRejected: If the role or current state does not permit the action
    """
    return _apply(DOCUMENT_TRANSITIONS, current, action, role, "documents")


def apply_submission_transition(
    current: SubmissionStatus,
    action: SubmissionAction,
    role: Union[UserRole, str],
) -> SubmissionStatus:
    """Validate a submission action and return the resulting status.

    Raises:
        TransitionRejected: If the role or current state does not permit the action
    """
    return _apply(SUBMISSION_TRANSITIONS, current, action, role, "submissions")


def can_transition_document(current: DocumentState, action: DocumentAction, role) -> bool:
    """Check a document action without raising."""
    try:
        apply_document_transition(current, action, role)
        return True
    except TransitionRejected:
        return False


def can_transition_submission(current: SubmissionStatus, action: SubmissionAction, role) -> bool:
    """Check a submission action without raising."""
    try:
        apply_submission_transition(current, action, role)
        return True
    except TransitionRejected:
        return False


def get_allowed_submission_actions(current: SubmissionStatus, role) -> List[SubmissionAction]:
    """List the submission actions a role may perform in the given state."""
    return [action for action in SubmissionAction if can_transition_submission(current, action, role)]
