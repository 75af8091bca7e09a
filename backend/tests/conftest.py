"""Pytest fixtures for the compliance review backend.

Provides reusable test fixtures for:
- Database session on a throwaway SQLite file (tables created per test)
- Users for every role (consultant assigned to the vendor)
- Authenticated test clients with JWT tokens
- Local-disk storage and a recorder for outgoing notification emails

Usage:
    def test_vendor_can_create(vendor_client):
        response = vendor_client.post("/api/v1/document-submissions", json={...})
        assert response.status_code == 201
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator

# Set environment variables BEFORE any application imports so the cached
# settings and the database engine pick them up
_test_dir = tempfile.mkdtemp(prefix="compliance-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_test_dir}/test.db")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("UPLOAD_DIR", f"{_test_dir}/uploads")
os.environ.setdefault("LOG_JSON", "false")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from database import engine, SessionLocal, get_db as database_get_db
from dependencies import get_storage
from infrastructure.storage.local_storage_adapter import LocalStorageAdapter
from models import Base
from models.user import User
from auth.password import hash_password
from auth.jwt import create_access_token

API = "/api/v1"
SUBMISSIONS = f"{API}/document-submissions"

# Hashing is deliberately slow; all fixture users share one password
TEST_PASSWORD = "Compliance2025"
_password_hash = None


def _hashed_password() -> str:
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(TEST_PASSWORD)
    return _password_hash


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_user(db_session: Session, email: str, role: str, **fields) -> User:
    user = User(
        email=email,
        name=fields.pop("name", email.split("@")[0].title()),
        role=role,
        password_hash=_hashed_password(),
        **fields,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin@test.com", "admin", name="Admin User")


@pytest.fixture(scope="function")
def consultant_user(db_session: Session) -> User:
    return make_user(db_session, "consultant@test.com", "consultant", name="Kavya Consultant")


@pytest.fixture(scope="function")
def other_consultant_user(db_session: Session) -> User:
    return make_user(db_session, "other.consultant@test.com", "consultant", name="Other Consultant")


@pytest.fixture(scope="function")
def vendor_user(db_session: Session, consultant_user: User) -> User:
    """Vendor assigned to consultant_user."""
    return make_user(
        db_session,
        "vendor@test.com",
        "vendor",
        name="Vendor User",
        company_name="Sunrise Facility Services",
        assigned_consultant_id=consultant_user.id,
    )


@pytest.fixture(scope="function")
def other_vendor_user(db_session: Session) -> User:
    """Vendor without an assigned consultant."""
    return make_user(db_session, "other.vendor@test.com", "vendor", company_name="Northwind Security")


@pytest.fixture(scope="function")
def storage(tmp_path) -> LocalStorageAdapter:
    return LocalStorageAdapter(root_dir=str(tmp_path / "uploads"))


@pytest.fixture(scope="function")
def sent_emails(monkeypatch) -> list:
    """Record queued notification emails instead of handing them to celery."""
    queued = []

    def fake_enqueue(**kwargs):
        queued.append(kwargs)

    monkeypatch.setattr("notifications.service.enqueue_notification_email", fake_enqueue)
    return queued


@pytest.fixture(scope="function")
def app(db_session: Session, storage: LocalStorageAdapter, sent_emails):
    """FastAPI app wired to the test session and storage."""
    from main import app as fastapi_app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    fastapi_app.dependency_overrides[database_get_db] = override_get_db
    fastapi_app.dependency_overrides[get_storage] = lambda: storage

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


def client_for(app, user: User) -> TestClient:
    """Create a test client with the user's bearer token pre-configured."""
    token = create_access_token(user_id=user.id, role=user.role, email=user.email)
    client = TestClient(app)
    client.headers = {"Authorization": f"Bearer {token}"}
    return client


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Unauthenticated test client."""
    return TestClient(app)


@pytest.fixture(scope="function")
def admin_client(app, admin_user: User) -> TestClient:
    return client_for(app, admin_user)


@pytest.fixture(scope="function")
def consultant_client(app, consultant_user: User) -> TestClient:
    return client_for(app, consultant_user)


@pytest.fixture(scope="function")
def other_consultant_client(app, other_consultant_user: User) -> TestClient:
    return client_for(app, other_consultant_user)


@pytest.fixture(scope="function")
def vendor_client(app, vendor_user: User) -> TestClient:
    return client_for(app, vendor_user)


@pytest.fixture(scope="function")
def other_vendor_client(app, other_vendor_user: User) -> TestClient:
    return client_for(app, other_vendor_user)


def pdf_file(document_type: str, marker: str = "") -> dict:
    """Multipart ``files`` payload with a small PDF unique to the document type."""
    content = f"%PDF-1.4 {document_type} {marker} test content".encode()
    return {"file": (f"{document_type.lower()}.pdf", content, "application/pdf")}


class SubmissionFlow:
    """Drives submissions through the workflow over the HTTP API."""

    def __init__(self, vendor_client: TestClient, consultant_client: TestClient):
        self.vendor = vendor_client
        self.consultant = consultant_client

    def create(self, year: int = 2025, month: str = "Jul", client: TestClient = None) -> dict:
        response = (client or self.vendor).post(
            SUBMISSIONS,
            json={"upload_year": year, "upload_month": month, "invoice_no": f"INV-{year}-{month}-001"},
        )
        assert response.status_code in (200, 201), response.text
        return response.json()

    def upload(self, submission_id: str, document_type: str, client: TestClient = None, marker: str = ""):
        return (client or self.vendor).post(
            f"{SUBMISSIONS}/{submission_id}/documents",
            data={"document_type": document_type},
            files=pdf_file(document_type, marker),
        )

    def upload_mandatory(self, submission_id: str, month: str = "Jul", skip=(), client: TestClient = None) -> dict:
        from domain.compliance.document_types import resolve_document_requirements

        body = None
        for document_type in resolve_document_requirements(month).mandatory:
            if document_type.value in skip:
                continue
            response = self.upload(submission_id, document_type.value, client=client)
            assert response.status_code == 201, response.text
            body = response.json()
        return body

    def submit(self, submission_id: str, client: TestClient = None):
        return (client or self.vendor).post(f"{SUBMISSIONS}/{submission_id}/submit")

    def submitted(self, year: int = 2025, month: str = "Jul", client: TestClient = None) -> dict:
        """Create, upload every mandatory document and submit."""
        submission = self.create(year, month, client=client)
        self.upload_mandatory(submission["submission_id"], month, client=client)
        response = self.submit(submission["submission_id"], client=client)
        assert response.status_code == 200, response.text
        return response.json()

    def review(self, submission_id: str, document_id: str, status: str, remarks="Checked", client: TestClient = None):
        return (client or self.consultant).post(
            f"{SUBMISSIONS}/{submission_id}/documents/{document_id}/status",
            json={"status": status, "remarks": remarks},
        )

    def review_all(self, submission: dict, status: str = "approved", client: TestClient = None) -> dict:
        body = submission
        for document in submission["documents"]:
            response = self.review(submission["submission_id"], document["id"], status, client=client)
            assert response.status_code == 200, response.text
            body = response.json()
        return body

    def finalize(self, submission_id: str, is_approved: bool, remarks="Overall fine", client: TestClient = None):
        return (client or self.consultant).post(
            f"{SUBMISSIONS}/{submission_id}/final-approval",
            json={"is_approved": is_approved, "remarks": remarks},
        )

    def resubmit(self, submission_id: str, document_id: str, document_type: str = None,
                 file_type: str = None, client: TestClient = None):
        data = {"document_type": document_type} if document_type else {}
        return (client or self.vendor).post(
            f"{SUBMISSIONS}/{submission_id}/documents/{document_id}/resubmit",
            data=data,
            files=pdf_file(file_type or document_type or "RESUBMISSION", marker="v2"),
        )


def find_document(submission: dict, document_type: str) -> dict:
    matches = [d for d in submission["documents"] if d["document_type"] == document_type]
    assert len(matches) == 1, f"expected one {document_type}, got {len(matches)}"
    return matches[0]


@pytest.fixture(scope="function")
def flow(vendor_client: TestClient, consultant_client: TestClient) -> SubmissionFlow:
    return SubmissionFlow(vendor_client, consultant_client)
