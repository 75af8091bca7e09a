"""Unit tests for the document and submission state machines

Tests cover:
- Document transitions and their target states
- Role checks (forbidden vs. wrong state)
- Submission transitions, including reopening finalized submissions
- Allowed-action listing per role
"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from auth.roles import UserRole
from domain.compliance.workflow import (
    DocumentAction,
    DocumentStatus,
    SubmissionAction,
    SubmissionStatus,
    TransitionRejected,
    apply_document_transition,
    apply_submission_transition,
    can_transition_document,
    get_allowed_submission_actions,
)


class TestDocumentTransitions:

    @pytest.mark.parametrize("current", [
        DocumentStatus.PENDING,
        DocumentStatus.UNDER_REVIEW,
        DocumentStatus.RESUBMITTED,
        DocumentStatus.REJECTED,
    ])
    def test_reviewer_can_approve(self, current):
        assert apply_document_transition(current, DocumentAction.APPROVE, "consultant") == DocumentStatus.APPROVED

    def test_approved_can_be_rejected_again(self):
        result = apply_document_transition(DocumentStatus.APPROVED, DocumentAction.REJECT, UserRole.ADMIN)
        assert result == DocumentStatus.REJECTED

    def test_approved_cannot_be_approved_again(self):
        with pytest.raises(TransitionRejected) as exc:
            apply_document_transition(DocumentStatus.APPROVED, DocumentAction.APPROVE, "consultant")

        assert exc.value.forbidden is False
        assert "approved" in exc.value.reason

    def test_vendor_cannot_approve(self):
        with pytest.raises(TransitionRejected) as exc:
            apply_document_transition(DocumentStatus.PENDING, DocumentAction.APPROVE, "vendor")

        assert exc.value.forbidden is True

    def test_unknown_role_is_forbidden(self):
        with pytest.raises(TransitionRejected) as exc:
            apply_document_transition(DocumentStatus.PENDING, DocumentAction.APPROVE, "auditor")

        assert exc.value.forbidden is True

    def test_only_rejected_documents_can_be_resubmitted(self):
        assert apply_document_transition(DocumentStatus.REJECTED, DocumentAction.RESUBMIT, "vendor") == \
            DocumentStatus.RESUBMITTED
        assert apply_document_transition(None, DocumentAction.RESUBMIT, "vendor") == DocumentStatus.RESUBMITTED

        with pytest.raises(TransitionRejected) as exc:
            apply_document_transition(DocumentStatus.APPROVED, DocumentAction.RESUBMIT, "vendor")
        assert exc.value.reason == "Only rejected documents can be resubmitted"

    def test_consultant_cannot_resubmit(self):
        assert can_transition_document(DocumentStatus.REJECTED, DocumentAction.RESUBMIT, "consultant") is False

    def test_upload_replaces_pending_only(self):
        assert apply_document_transition(None, DocumentAction.UPLOAD, "vendor") == DocumentStatus.PENDING
        assert can_transition_document(DocumentStatus.APPROVED, DocumentAction.UPLOAD, "vendor") is False


class TestSubmissionTransitions:

    def test_submit_from_draft(self):
        assert apply_submission_transition(SubmissionStatus.DRAFT, SubmissionAction.SUBMIT, "vendor") == \
            SubmissionStatus.SUBMITTED

    def test_submit_twice_is_rejected(self):
        with pytest.raises(TransitionRejected) as exc:
            apply_submission_transition(SubmissionStatus.SUBMITTED, SubmissionAction.SUBMIT, "vendor")

        assert exc.value.forbidden is False

    def test_consultant_cannot_submit(self):
        with pytest.raises(TransitionRejected) as exc:
            apply_submission_transition(SubmissionStatus.DRAFT, SubmissionAction.SUBMIT, "consultant")

        assert exc.value.forbidden is True

    def test_start_review_only_from_submitted(self):
        assert apply_submission_transition(
            SubmissionStatus.SUBMITTED, SubmissionAction.START_REVIEW, "consultant"
        ) == SubmissionStatus.UNDER_REVIEW

        with pytest.raises(TransitionRejected):
            apply_submission_transition(SubmissionStatus.UNDER_REVIEW, SubmissionAction.START_REVIEW, "consultant")

    @pytest.mark.parametrize("current", [SubmissionStatus.REJECTED, SubmissionStatus.FULLY_APPROVED])
    def test_resubmission_reopens_finalized(self, current):
        result = apply_submission_transition(current, SubmissionAction.RESUBMIT_DOCUMENT, "vendor")
        assert result == SubmissionStatus.UNDER_REVIEW

    def test_draft_documents_cannot_be_reviewed(self):
        with pytest.raises(TransitionRejected):
            apply_submission_transition(SubmissionStatus.DRAFT, SubmissionAction.REVIEW_DOCUMENT, "consultant")

    def test_bulk_actions_are_admin_only(self):
        assert apply_submission_transition(
            SubmissionStatus.SUBMITTED, SubmissionAction.BULK_APPROVE, "admin"
        ) == SubmissionStatus.FULLY_APPROVED

        with pytest.raises(TransitionRejected) as exc:
            apply_submission_transition(SubmissionStatus.SUBMITTED, SubmissionAction.BULK_APPROVE, "consultant")
        assert exc.value.forbidden is True

    def test_finalized_cannot_be_finalized_again(self):
        with pytest.raises(TransitionRejected):
            apply_submission_transition(
                SubmissionStatus.FULLY_APPROVED, SubmissionAction.FINALIZE_REJECT, "consultant"
            )


class TestAllowedActions:

    def test_vendor_draft(self):
        actions = get_allowed_submission_actions(SubmissionStatus.DRAFT, "vendor")
        assert actions == [SubmissionAction.SUBMIT, SubmissionAction.EDIT_DOCUMENTS]

    def test_consultant_submitted(self):
        actions = get_allowed_submission_actions(SubmissionStatus.SUBMITTED, "consultant")

        assert SubmissionAction.START_REVIEW in actions
        assert SubmissionAction.FINALIZE_APPROVE in actions
        assert SubmissionAction.BULK_APPROVE not in actions

    def test_consultant_nothing_on_draft(self):
        assert get_allowed_submission_actions(SubmissionStatus.DRAFT, "consultant") == []
