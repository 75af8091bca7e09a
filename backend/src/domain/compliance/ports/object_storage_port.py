"""Object Storage Port - Domain interface for compliance file storage.

The review workflow only ever stores the storage key returned here plus the
original filename. Adapters decide where bytes actually live (local disk or
an S3-compatible bucket).

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


class StorageError(Exception):
    """Raised when a storage backend operation fails."""
    pass


@dataclass
class StoredFile:
    """Metadata for a stored file.

    Attributes:
        storage_key: Backend-relative key (format: {key_prefix}/{sha256[:16]}{ext})
        sha256: SHA256 hash of file content (hex format)
        size_bytes: File size in bytes
        mime_type: MIME type of the file (e.g., 'application/pdf')
    """
    storage_key: str
    sha256: str
    size_bytes: int
    mime_type: str


class ObjectStoragePort(ABC):
    """Port interface for storing compliance documents.

    Example Usage:
        stored = await storage.store_file(
            file=BytesIO(content),
            key_prefix=f"{vendor_id}/2025/Jul/INVOICE",
            filename="invoice.pdf",
            mime_type="application/pdf",
        )
        await storage.delete_file(stored.storage_key)
    """

    @abstractmethod
    async def store_file(
        self,
        file: BinaryIO,
        key_prefix: str,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        """Store a file under the given key prefix.

        Identical content under the same prefix maps to the same key, so
        storing it twice is idempotent.

        Raises:
            StorageError: If the write fails
            ValueError: If the file is empty
        """
        pass

    @abstractmethod
    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        """Open a stored file for reading (caller closes the stream).

        Raises:
            FileNotFoundError: If the key does not exist
            StorageError: If retrieval fails
        """
        pass

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete a stored file.

        Returns:
            bool: True if deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        """Check if a storage key exists."""
        pass

    @abstractmethod
    def check_health(self) -> None:
        """Raise if the backend is unreachable or not writable."""
        pass


def content_storage_key(key_prefix: str, filename: str, sha256_hex: str) -> str:
    """Content-addressed key: ``{key_prefix}/{sha256[:16]}{ext}``."""
    return f"{key_prefix.strip('/')}/{sha256_hex[:16]}{Path(filename).suffix.lower()}"
