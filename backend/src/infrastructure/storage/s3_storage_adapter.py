"""Document storage on AWS S3 or an S3-compatible service (MinIO)."""

import hashlib
import logging
from io import BytesIO
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from domain.compliance.ports import ObjectStoragePort, StoredFile, StorageError, content_storage_key

logger = logging.getLogger(__name__)

_MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(ObjectStoragePort):
    """ObjectStoragePort backed by a single bucket.

    Keys are content addressed below the caller's prefix, so re-uploading
    the same bytes for the same document slot skips the PUT.
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
    ):
        try:
            self.client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except BotoCoreError as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

        self.bucket_name = bucket_name
        logger.info(f"S3 document storage: bucket={bucket_name}, endpoint={endpoint_url or 'aws'}")

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

        digest = hashlib.sha256(content).hexdigest()
        stored = StoredFile(
            storage_key=content_storage_key(key_prefix, filename, digest),
            sha256=digest,
            size_bytes=len(content),
            mime_type=mime_type,
        )
        if await self.file_exists(stored.storage_key):
            logger.debug(f"Upload deduplicated: storage_key={stored.storage_key}")
            return stored

        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=stored.storage_key,
                Body=BytesIO(content),
                ContentType=mime_type,
                Metadata={"sha256": digest, "original_filename": filename},
            )
        except ClientError as e:
            logger.error(f"S3 upload failed: storage_key={stored.storage_key}, error={_error_code(e)}")
            raise StorageError(f"Failed to upload file: {_error_code(e)}")

        logger.info(f"Stored file: storage_key={stored.storage_key}, size={stored.size_bytes}")
        return stored

    async def retrieve_file(self, storage_key: str) -> BinaryIO:
        try:
            return self.client.get_object(Bucket=self.bucket_name, Key=storage_key)["Body"]
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(f"File not found: {storage_key}")
            raise StorageError(f"Failed to retrieve file: {_error_code(e)}")

    async def delete_file(self, storage_key: str) -> bool:
        # delete_object succeeds on missing keys, so look first to report False
        if not await self.file_exists(storage_key):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete file: {_error_code(e)}")
        logger.info(f"Deleted file: storage_key={storage_key}")
        return True

    async def file_exists(self, storage_key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=storage_key)
        except ClientError as e:
            if _error_code(e) not in _MISSING_CODES:
                raise StorageError(f"Failed to check file: {_error_code(e)}")
            return False
        return True

    def check_health(self) -> None:
        self.client.head_bucket(Bucket=self.bucket_name)
