"""Upload handling shared by document upload and resubmission."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings
from domain.compliance.ports import ObjectStoragePort, StoredFile
from domain.compliance.validation import (
    validate_filename,
    sanitize_filename,
    validate_file_type,
    validate_file_size,
)
from models.document_submission import DocumentSubmission, SubmissionDocument

logger = logging.getLogger(__name__)

_STAGED_UPLOADS = "staged_upload_keys"


@dataclass
class IncomingFile:
    """An uploaded file read into memory and validated."""
    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


async def read_upload(file: Optional[UploadFile]) -> IncomingFile:
    """Read and validate a multipart upload.

    Validation:
    - Filename sanity checks
    - Extension / MIME allow-list (PDF, Word, Excel, JPEG, PNG)
    - Size between 1 byte and MAX_UPLOAD_SIZE_BYTES

    Raises:
        HTTPException 400: If the file is missing or fails validation
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    is_valid, error_msg = validate_filename(file.filename)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

    safe_filename = sanitize_filename(file.filename)

    is_valid, error_msg = validate_file_type(safe_filename, file.content_type)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

    content = await file.read()
    is_valid, error_msg = validate_file_size(len(content), get_settings().MAX_UPLOAD_SIZE_BYTES)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

    return IncomingFile(filename=safe_filename, mime_type=file.content_type, content=content)


def storage_prefix(submission: DocumentSubmission, document_type: str) -> str:
    """Key prefix: {vendor_id}/{year}/{month}/{document_type}"""
    return f"{submission.vendor_id}/{submission.upload_year}/{submission.upload_month}/{document_type}"


async def store_incoming_file(
    db: Session,
    storage: ObjectStoragePort,
    submission: DocumentSubmission,
    document_type: str,
    incoming: IncomingFile,
) -> StoredFile:
    """Write the file to storage and remember its key on the session.

    The key is kept in ``db.info`` until the request ends, so
    ``cleanup_uploads_on_failure`` can remove it if the transaction fails.

    Raises:
        StorageError: the backend is unavailable (mapped to 503)
    """
    stored = await storage.store_file(
        file=BytesIO(incoming.content),
        key_prefix=storage_prefix(submission, document_type),
        filename=incoming.filename,
        mime_type=incoming.mime_type,
    )
    db.info.setdefault(_STAGED_UPLOADS, []).append(stored.storage_key)
    return stored


async def discard_files(storage: ObjectStoragePort, storage_keys) -> None:
    """Delete stored files no longer referenced by any document.

    Best-effort: runs after commit, failures are logged only.
    """
    for storage_key in storage_keys:
        if not storage_key:
            continue
        try:
            await storage.delete_file(storage_key)
        except Exception as e:
            logger.warning(f"Deleting stored file failed: storage_key={storage_key}, error={e}")


@asynccontextmanager
async def cleanup_uploads_on_failure(db: Session, storage: ObjectStoragePort):
    """Delete files stored by a workflow operation whose transaction failed.

    Keys are content addressed, so a key may already belong to a committed
    document (same bytes re-uploaded); those are left alone.

    Example:
        async with cleanup_uploads_on_failure(db, storage):
            with workflow_transaction(db, "upload_document"):
                result = await upload_document(db, storage, ...)
    """
    db.info[_STAGED_UPLOADS] = []
    try:
        yield
    except Exception:
        staged = db.info.pop(_STAGED_UPLOADS, [])
        await _discard_unreferenced(db, storage, staged)
        raise
    else:
        db.info.pop(_STAGED_UPLOADS, None)


async def _discard_unreferenced(db: Session, storage: ObjectStoragePort, storage_keys) -> None:
    for storage_key in storage_keys:
        try:
            referenced = (
                db.query(SubmissionDocument.id).filter(SubmissionDocument.file_path == storage_key).first()
            )
        except SQLAlchemyError as e:
            logger.warning(f"Skipping cleanup of stored file: storage_key={storage_key}, error={e}")
            continue
        if referenced is None:
            await discard_files(storage, [storage_key])


async def open_document_file(storage: ObjectStoragePort, document: SubmissionDocument):
    """Open a document's stored file for streaming.

    Raises:
        HTTPException 404: the file is missing from storage
        StorageError: the backend is unavailable (mapped to 503)
    """
    try:
        return await storage.retrieve_file(document.file_path)
    except FileNotFoundError:
        logger.warning(
            f"Stored file missing: document_id={document.id}, storage_key={document.file_path}"
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file not found")


def iter_file(stream, chunk_size: int = 64 * 1024):
    """Yield a stored file in chunks and close it afterwards."""
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()
