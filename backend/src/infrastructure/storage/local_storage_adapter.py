"""Local disk storage adapter.

Stores files below a root directory and hands back server-relative keys,
the same shape the S3 adapter produces. Default backend for development and
tests.
"""

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

from domain.compliance.ports import ObjectStoragePort, StoredFile, StorageError, content_storage_key

logger = logging.getLogger(__name__)


class LocalStorageAdapter(ObjectStoragePort):
    """Filesystem-backed ObjectStoragePort."""

    def __init__(self, root_dir: str):
        self.root = Path(root_dir).resolve()

    def _path_for(self, storage_key: str) -> Path:
        path = (self.root / storage_key).resolve()
        # Keys must stay inside the storage root
        if self.root not in path.parents:
            raise StorageError(f"Storage key escapes storage root: {storage_key}")
        return path

    async def store_file(
        self,
        file: BinaryIO,
        key_prefix: str,
        filename: str,
        mime_type: str,
    ) -> StoredFile:
        content = file.read()
        if not content:
            raise ValueError("Cannot store empty file")

        sha256_hex = hashlib.sha256(content).hexdigest()
        storage_key = content_storage_key(key_prefix, filename, sha256_hex)
        path = self._path_for(storage_key)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                path.write_bytes(content)
        except OSError as e:
            logger.error(f"Local write failed: storage_key={storage_key}, error={e}")
            raise StorageError(f"Failed to store file: {e}")

        logger.info(f"Stored file: storage_key={storage_key}, size={len(content)}")
        return StoredFile(
            storage_key=storage_key,
            sha256=sha256_hex,
            size_bytes=len(content),
            mime_type=mime_type,
        )

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        path = self._path_for(storage_key)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {storage_key}")
        return path.open("rb")

    async def delete_file(self, storage_key: str) -> bool:
        path = self._path_for(storage_key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete file: {e}")
        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        return self._path_for(storage_key).is_file()

    def check_health(self) -> None:
        """Raise if the storage root cannot be created or written."""
        self.root.mkdir(parents=True, exist_ok=True)
        probe = self.root / ".healthcheck"
        probe.write_bytes(b"ok")
        probe.unlink()
