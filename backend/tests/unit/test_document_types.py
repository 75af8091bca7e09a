"""Unit tests for the compliance document catalogue and mandatory-document resolver"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.compliance.document_types import (
    DocumentType,
    MONTHLY_MANDATORY,
    ONE_TIME_OPTIONAL,
    check_mandatory_documents,
    get_document_label,
    is_allowed_for_month,
    is_mandatory,
    parse_month,
    resolve_document_requirements,
)


class TestResolveDocumentRequirements:
    """Test the per-month mandatory set"""

    @pytest.mark.parametrize("month", ["Jan", "Feb", "Jun", "Jul", "Nov"])
    def test_regular_months_have_monthly_set(self, month):
        requirements = resolve_document_requirements(month)

        assert requirements.mandatory == MONTHLY_MANDATORY
        assert len(requirements.mandatory) == 9

    def test_december_adds_labour_welfare_fund(self):
        requirements = resolve_document_requirements("Dec")

        assert len(requirements.mandatory) == 10
        assert requirements.mandatory[-1] == DocumentType.LABOUR_WELFARE_FUND

    def test_unknown_month_gets_monthly_set(self):
        assert resolve_document_requirements("Foo").mandatory == MONTHLY_MANDATORY
        assert resolve_document_requirements(None).mandatory == MONTHLY_MANDATORY

    def test_optional_types_are_one_time(self):
        assert resolve_document_requirements("Jul").optional == ONE_TIME_OPTIONAL
        assert DocumentType.ADDITIONAL_DOCUMENT not in ONE_TIME_OPTIONAL


class TestMembership:
    """Test is_mandatory / is_allowed_for_month"""

    def test_lwf_only_mandatory_in_december(self):
        assert is_mandatory("LABOUR_WELFARE_FUND", "Dec") is True
        assert is_mandatory("LABOUR_WELFARE_FUND", "Jul") is False

    def test_lwf_not_allowed_outside_december(self):
        assert is_allowed_for_month("LABOUR_WELFARE_FUND", "Jul") is False
        assert is_allowed_for_month("LABOUR_WELFARE_FUND", "dec") is True

    def test_additional_document_always_allowed(self):
        assert is_allowed_for_month("ADDITIONAL_DOCUMENT", "Mar") is True
        assert is_mandatory("ADDITIONAL_DOCUMENT", "Mar") is False

    def test_optional_types_allowed(self):
        assert is_allowed_for_month("VENDOR_AGREEMENT", "Jul") is True

    def test_unknown_type(self):
        assert is_allowed_for_month("PASSPORT", "Jul") is False
        assert is_mandatory("PASSPORT", "Jul") is False


class TestCheckMandatoryDocuments:
    """Test submit gating"""

    def test_all_present(self):
        uploaded = [t.value for t in MONTHLY_MANDATORY] + ["VENDOR_AGREEMENT"]

        complete, missing, required = check_mandatory_documents(uploaded, "Jul")

        assert complete is True
        assert missing == []
        assert len(required) == 9

    def test_missing_listed_in_catalogue_order(self):
        uploaded = ["INVOICE", "ECR"]

        complete, missing, _ = check_mandatory_documents(uploaded, "Dec")

        assert complete is False
        assert missing[0] == "FORM_T_MUSTER_ROLL"
        assert missing[-1] == "LABOUR_WELFARE_FUND"
        assert len(missing) == 8

    def test_accepts_enum_members(self):
        complete, _, _ = check_mandatory_documents(list(MONTHLY_MANDATORY), "Jul")
        assert complete is True


class TestHelpers:

    def test_parse_month_normalizes_case(self):
        assert parse_month("dEc").value == "Dec"
        assert parse_month(" jul ").value == "Jul"
        assert parse_month("July") is None
        assert parse_month("") is None

    def test_labels(self):
        assert get_document_label("ECR") == "Electronic Challan cum Return (ECR)"
        assert get_document_label("SOMETHING_ELSE") == "SOMETHING_ELSE"
