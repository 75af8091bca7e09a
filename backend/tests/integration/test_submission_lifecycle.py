"""Integration tests for the submission lifecycle

Tests cover:
- Creating a submission for an upload period
- Uploading, replacing and deleting documents in a draft
- Submit gating on the month's mandatory documents
- Starting review
- Downloading stored files and storage failure handling
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import SUBMISSIONS, find_document, pdf_file
from dependencies import get_storage
from domain.compliance.document_types import MONTHLY_MANDATORY, get_document_label
from domain.compliance.ports import StorageError
from infrastructure.storage.local_storage_adapter import LocalStorageAdapter
from models.audit_log import AuditLog
from models.notification import Notification


pytestmark = pytest.mark.integration


class TestCreateSubmission:
    """Test POST /document-submissions"""

    def test_vendor_creates_draft(self, vendor_client: TestClient, consultant_user):
        response = vendor_client.post(
            SUBMISSIONS,
            json={"upload_year": 2025, "upload_month": "jul", "invoice_no": "INV-77"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["submission_id"].startswith("SUB-2025-Jul-")
        assert len(data["submission_id"]) == len("SUB-2025-Jul-") + 6
        assert data["submission_status"] == "draft"
        assert data["upload_month"] == "Jul"
        assert data["documents"] == []
        assert data["consultant_name"] == consultant_user.name
        assert data["consultant_email"] == consultant_user.email
        assert data["work_location"] == "IMTMA, Bengaluru"
        assert "submit" in data["allowed_actions"]

    def test_existing_draft_is_returned(self, vendor_client: TestClient, flow):
        first = flow.create(2025, "Aug")

        response = vendor_client.post(SUBMISSIONS, json={"upload_year": 2025, "upload_month": "Aug"})

        assert response.status_code == 200
        assert response.json()["submission_id"] == first["submission_id"]

    def test_period_already_submitted_is_rejected(self, vendor_client: TestClient, flow):
        flow.submitted(2025, "Jul")

        response = vendor_client.post(SUBMISSIONS, json={"upload_year": 2025, "upload_month": "Jul"})

        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    @pytest.mark.parametrize("year,month", [(2022, "Jul"), (2036, "Jul"), (2025, "July"), (2025, "Foo")])
    def test_invalid_period(self, vendor_client: TestClient, year, month):
        response = vendor_client.post(SUBMISSIONS, json={"upload_year": year, "upload_month": month})
        assert response.status_code == 400

    def test_consultant_cannot_create(self, consultant_client: TestClient):
        response = consultant_client.post(SUBMISSIONS, json={"upload_year": 2025, "upload_month": "Jul"})
        assert response.status_code == 403

    def test_requires_authentication(self, client: TestClient):
        response = client.post(SUBMISSIONS, json={"upload_year": 2025, "upload_month": "Jul"})
        assert response.status_code in (401, 403)


class TestUploadDocument:
    """Test POST /document-submissions/{id}/documents"""

    def test_upload_adds_pending_document(self, flow, db_session: Session):
        submission = flow.create()

        response = flow.upload(submission["submission_id"], "invoice")

        assert response.status_code == 201
        document = find_document(response.json(), "INVOICE")
        assert document["status"] == "pending"
        assert document["is_mandatory"] is True
        assert document["document_label"] == "Invoice"
        assert document["file_name"] == "invoice.pdf"
        assert document["version"] == 1

        entry = db_session.query(AuditLog).filter(AuditLog.action == "DOCUMENT_UPLOADED").one()
        assert entry.entity_type == "submission_document"

    def test_reupload_replaces_in_place(self, flow):
        submission = flow.create()
        first = find_document(flow.upload(submission["submission_id"], "INVOICE").json(), "INVOICE")

        response = flow.upload(submission["submission_id"], "INVOICE", marker="second")

        assert response.status_code == 201
        data = response.json()
        replaced = find_document(data, "INVOICE")
        assert replaced["id"] == first["id"]
        assert replaced["version"] == 2
        assert len(data["documents"]) == 1

    def test_optional_document_is_not_mandatory(self, flow):
        submission = flow.create()

        response = flow.upload(submission["submission_id"], "VENDOR_AGREEMENT")

        assert response.status_code == 201
        assert find_document(response.json(), "VENDOR_AGREEMENT")["is_mandatory"] is False

    def test_one_time_document_only_once_per_vendor(self, flow):
        july = flow.create(2025, "Jul")
        assert flow.upload(july["submission_id"], "EPF_FORM_5A").status_code == 201

        august = flow.create(2025, "Aug")
        response = flow.upload(august["submission_id"], "EPF_FORM_5A")

        assert response.status_code == 400
        assert "one-time" in response.json()["detail"]

    def test_december_only_type_rejected_in_july(self, flow):
        submission = flow.create(2025, "Jul")

        response = flow.upload(submission["submission_id"], "LABOUR_WELFARE_FUND")

        assert response.status_code == 400
        assert "not accepted for Jul" in response.json()["detail"]

    def test_unknown_document_type(self, flow):
        submission = flow.create()

        response = flow.upload(submission["submission_id"], "PAYSLIP")

        assert response.status_code == 400
        assert "Invalid document type" in response.json()["detail"]

    def test_unsupported_file_type(self, vendor_client: TestClient, flow):
        submission = flow.create()

        response = vendor_client.post(
            f"{SUBMISSIONS}/{submission['submission_id']}/documents",
            data={"document_type": "INVOICE"},
            files={"file": ("invoice.csv", b"a,b,c", "text/csv")},
        )

        assert response.status_code == 400

    def test_empty_file(self, vendor_client: TestClient, flow):
        submission = flow.create()

        response = vendor_client.post(
            f"{SUBMISSIONS}/{submission['submission_id']}/documents",
            data={"document_type": "INVOICE"},
            files={"file": ("invoice.pdf", b"", "application/pdf")},
        )

        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_other_vendor_cannot_upload(self, flow, other_vendor_client: TestClient):
        submission = flow.create()

        response = flow.upload(submission["submission_id"], "INVOICE", client=other_vendor_client)

        assert response.status_code == 403

    def test_upload_after_submit_is_rejected(self, flow):
        submission = flow.submitted()

        response = flow.upload(submission["submission_id"], "VENDOR_AGREEMENT")

        assert response.status_code == 400
        assert "draft" in response.json()["detail"]

    def test_file_is_written_to_storage(self, flow, storage, vendor_user):
        submission = flow.create()
        flow.upload(submission["submission_id"], "INVOICE")

        stored = list((storage.root / str(vendor_user.id) / "2025" / "Jul" / "INVOICE").iterdir())
        assert len(stored) == 1
        assert stored[0].suffix == ".pdf"


class TestDeleteDocument:
    """Test DELETE /document-submissions/{id}/documents/{document_id}"""

    def test_delete_from_draft(self, vendor_client: TestClient, flow, storage):
        submission = flow.create()
        document = find_document(flow.upload(submission["submission_id"], "INVOICE").json(), "INVOICE")

        response = vendor_client.delete(f"{SUBMISSIONS}/{submission['submission_id']}/documents/{document['id']}")

        assert response.status_code == 200
        assert response.json()["documents"] == []
        assert not any(p.is_file() for p in storage.root.rglob("*"))

    def test_delete_unknown_document(self, vendor_client: TestClient, flow):
        submission = flow.create()

        response = vendor_client.delete(
            f"{SUBMISSIONS}/{submission['submission_id']}/documents/00000000-0000-0000-0000-000000000000"
        )

        assert response.status_code == 404

    def test_delete_after_submit_is_rejected(self, vendor_client: TestClient, flow):
        submission = flow.submitted()
        document = submission["documents"][0]

        response = vendor_client.delete(f"{SUBMISSIONS}/{submission['submission_id']}/documents/{document['id']}")

        assert response.status_code == 400


class TestSubmit:
    """Test POST /document-submissions/{id}/submit"""

    def test_submit_with_all_mandatory_documents(self, flow, db_session: Session, consultant_user, sent_emails):
        submission = flow.create(2025, "Jul")
        flow.upload_mandatory(submission["submission_id"], "Jul")

        response = flow.submit(submission["submission_id"])

        assert response.status_code == 200
        data = response.json()
        assert data["submission_status"] == "submitted"
        assert data["submission_date"] is not None
        assert len(data["documents"]) == 9

        notification = db_session.query(Notification).filter(
            Notification.recipient_id == consultant_user.id
        ).one()
        assert notification.type == "document_submission"
        assert data["submission_id"] in notification.message

        assert [e["to"] for e in sent_emails] == [consultant_user.email]

    @pytest.mark.parametrize("omitted", [t.value for t in MONTHLY_MANDATORY])
    def test_missing_document_is_named(self, flow, omitted):
        submission = flow.create(2025, "Jul")
        flow.upload_mandatory(submission["submission_id"], "Jul", skip=(omitted,))

        response = flow.submit(submission["submission_id"])

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["missing_documents"] == [omitted]
        assert detail["missing_labels"] == [get_document_label(omitted)]

        status_after = flow.vendor.get(f"{SUBMISSIONS}/{submission['submission_id']}").json()["submission_status"]
        assert status_after == "draft"

    def test_december_requires_labour_welfare_fund(self, flow):
        submission = flow.create(2025, "Dec")
        flow.upload_mandatory(submission["submission_id"], "Jul")

        response = flow.submit(submission["submission_id"])

        assert response.status_code == 400
        assert response.json()["detail"]["missing_documents"] == ["LABOUR_WELFARE_FUND"]

        assert flow.upload(submission["submission_id"], "LABOUR_WELFARE_FUND").status_code == 201
        assert flow.submit(submission["submission_id"]).status_code == 200

    def test_unassigned_vendor_notifies_admins(self, flow, other_vendor_client, admin_user, db_session: Session):
        flow.submitted(client=other_vendor_client)

        notification = db_session.query(Notification).one()
        assert notification.recipient_id == admin_user.id

    def test_submit_twice(self, flow):
        submission = flow.submitted()

        response = flow.submit(submission["submission_id"])

        assert response.status_code == 400


class TestStartReview:
    """Test POST /document-submissions/{id}/start-review"""

    def test_assigned_consultant_starts_review(self, flow, consultant_client: TestClient, sent_emails):
        submission = flow.submitted()
        sent_emails.clear()

        response = consultant_client.post(f"{SUBMISSIONS}/{submission['submission_id']}/start-review")

        assert response.status_code == 200
        data = response.json()
        assert data["submission_status"] == "under_review"
        assert {d["status"] for d in data["documents"]} == {"under_review"}
        # workflow updates are in-app only
        assert sent_emails == []

    def test_unassigned_consultant_is_forbidden(self, flow, other_consultant_client: TestClient):
        submission = flow.submitted()

        response = other_consultant_client.post(f"{SUBMISSIONS}/{submission['submission_id']}/start-review")

        assert response.status_code == 403

    def test_vendor_cannot_start_review(self, flow, vendor_client: TestClient):
        submission = flow.submitted()

        response = vendor_client.post(f"{SUBMISSIONS}/{submission['submission_id']}/start-review")

        assert response.status_code == 403

    def test_draft_cannot_be_reviewed(self, flow, admin_client: TestClient):
        submission = flow.create()

        response = admin_client.post(f"{SUBMISSIONS}/{submission['submission_id']}/start-review")

        assert response.status_code == 400


class TestDownloadDocument:
    """Test GET /document-submissions/{id}/documents/{document_id}/file"""

    def _url(self, submission: dict, document: dict) -> str:
        return f"{SUBMISSIONS}/{submission['submission_id']}/documents/{document['id']}/file"

    def test_vendor_downloads_own_file(self, flow):
        submission = flow.create()
        invoice = find_document(flow.upload(submission["submission_id"], "INVOICE").json(), "INVOICE")

        response = flow.vendor.get(self._url(submission, invoice))

        assert response.status_code == 200
        assert response.content == pdf_file("INVOICE")["file"][1]
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="invoice.pdf"' in response.headers["content-disposition"]

    def test_assigned_consultant_downloads(self, flow):
        submission = flow.submitted()
        invoice = find_document(submission, "INVOICE")

        response = flow.consultant.get(self._url(submission, invoice))

        assert response.status_code == 200
        assert response.content == pdf_file("INVOICE")["file"][1]

    def test_unassigned_consultant_is_forbidden(self, flow, other_consultant_client: TestClient):
        submission = flow.submitted()
        invoice = find_document(submission, "INVOICE")

        response = other_consultant_client.get(self._url(submission, invoice))

        assert response.status_code == 403

    def test_other_vendor_is_forbidden(self, flow, other_vendor_client: TestClient):
        submission = flow.create()
        invoice = find_document(flow.upload(submission["submission_id"], "INVOICE").json(), "INVOICE")

        response = other_vendor_client.get(self._url(submission, invoice))

        assert response.status_code == 403

    def test_unknown_document(self, flow):
        submission = flow.create()

        response = flow.vendor.get(self._url(submission, {"id": "00000000-0000-0000-0000-000000000000"}))

        assert response.status_code == 404

    def test_file_missing_from_storage(self, flow, storage):
        submission = flow.create()
        invoice = find_document(flow.upload(submission["submission_id"], "INVOICE").json(), "INVOICE")
        for path in storage.root.rglob("*.pdf"):
            path.unlink()

        response = flow.vendor.get(self._url(submission, invoice))

        assert response.status_code == 404
        assert response.json()["detail"] == "Document file not found"


class UnavailableStorage(LocalStorageAdapter):
    async def store_file(self, file, key_prefix, filename, mime_type):
        raise StorageError("bucket unreachable")


def _stored_files(storage) -> list:
    if not storage.root.exists():
        return []
    return sorted(path for path in storage.root.rglob("*") if path.is_file())


class TestUploadStorageFailures:

    def test_storage_outage_is_service_unavailable(self, app, flow, tmp_path):
        submission = flow.create()
        app.dependency_overrides[get_storage] = lambda: UnavailableStorage(root_dir=str(tmp_path / "down"))

        response = flow.upload(submission["submission_id"], "INVOICE")

        assert response.status_code == 503
        assert response.json()["error"] == "storage_error"

    def test_failed_transaction_removes_new_file(self, flow, storage, monkeypatch):
        submission = flow.create()

        def conflict(*args, **kwargs):
            raise HTTPException(status_code=409, detail="Submission was modified concurrently")

        monkeypatch.setattr("submissions.service.log_document_activity", conflict)

        response = flow.upload(submission["submission_id"], "INVOICE")

        assert response.status_code == 409
        assert _stored_files(storage) == []

    def test_failed_transaction_keeps_file_of_committed_document(self, flow, storage, monkeypatch):
        submission = flow.create()
        assert flow.upload(submission["submission_id"], "INVOICE").status_code == 201
        committed = _stored_files(storage)
        assert len(committed) == 1

        def conflict(*args, **kwargs):
            raise HTTPException(status_code=409, detail="Submission was modified concurrently")

        monkeypatch.setattr("submissions.service.log_document_activity", conflict)

        response = flow.upload(submission["submission_id"], "INVOICE")

        assert response.status_code == 409
        assert _stored_files(storage) == committed
