"""Unit tests for overall-status and submission-status derivation"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.compliance.derivation import (
    all_documents_reviewed,
    derive_overall_status,
    recompute_submission_status,
)
from domain.compliance.workflow import DocumentStatus, OverallStatus, SubmissionStatus


class TestDeriveOverallStatus:

    def test_resubmitted_wins_over_rejected(self):
        assert derive_overall_status(["rejected", "resubmitted", "approved"]) == OverallStatus.IN_PROGRESS

    def test_any_rejection_is_pending(self):
        assert derive_overall_status(["approved", "rejected"]) == OverallStatus.PENDING
        assert derive_overall_status(["requires_resubmission"]) == OverallStatus.PENDING

    def test_all_approved(self):
        assert derive_overall_status([DocumentStatus.APPROVED, "approved"]) == OverallStatus.APPROVED

    def test_mixed_in_flight(self):
        assert derive_overall_status(["approved", "pending"]) == OverallStatus.IN_PROGRESS

    def test_empty_is_in_progress(self):
        assert derive_overall_status([]) == OverallStatus.IN_PROGRESS


class TestAllDocumentsReviewed:

    def test_reviewed(self):
        assert all_documents_reviewed(["approved", "rejected"]) is True

    def test_not_reviewed(self):
        assert all_documents_reviewed(["approved", "resubmitted"]) is False

    def test_empty(self):
        assert all_documents_reviewed([]) is False


class TestRecomputeSubmissionStatus:

    def test_draft_stays_draft(self):
        assert recompute_submission_status("draft", ["approved"]) == SubmissionStatus.DRAFT

    @pytest.mark.parametrize("current", ["fully_approved", "rejected", "requires_resubmission"])
    def test_resubmission_reopens_review(self, current):
        assert recompute_submission_status(current, ["approved", "resubmitted"]) == SubmissionStatus.UNDER_REVIEW

    def test_finalized_status_is_kept(self):
        assert recompute_submission_status("fully_approved", ["approved"]) == SubmissionStatus.FULLY_APPROVED
        assert recompute_submission_status("rejected", ["rejected"]) == SubmissionStatus.REJECTED

    def test_rejection_requires_resubmission(self):
        assert recompute_submission_status("under_review", ["approved", "rejected"]) == \
            SubmissionStatus.REQUIRES_RESUBMISSION

    def test_all_approved_is_only_partial_until_finalized(self):
        assert recompute_submission_status("under_review", ["approved", "approved"]) == \
            SubmissionStatus.PARTIALLY_APPROVED

    def test_submitted_stays_submitted(self):
        assert recompute_submission_status("submitted", ["pending", "pending"]) == SubmissionStatus.SUBMITTED

    def test_under_review_stays(self):
        assert recompute_submission_status(SubmissionStatus.UNDER_REVIEW, ["pending"]) == \
            SubmissionStatus.UNDER_REVIEW
