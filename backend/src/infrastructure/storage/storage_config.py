"""Storage configuration and adapter factory.

Selects between local disk storage (default, development and tests) and an
S3-compatible bucket (MinIO in dev, AWS S3 in production).
"""

from dataclasses import dataclass
from typing import Optional

from config import get_settings
from domain.compliance.ports import ObjectStoragePort


@dataclass
class StorageConfig:
    """Configuration for the storage backend.

    Attributes:
        backend: "local" or "s3"
        upload_dir: Root directory for local storage
        endpoint_url: S3 endpoint URL (None for AWS S3 regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket name
        region: AWS region
    """
    backend: str
    upload_dir: str
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"


def load_storage_config() -> StorageConfig:
    """Build storage configuration from application settings."""
    settings = get_settings()
    return StorageConfig(
        backend=settings.STORAGE_BACKEND.lower(),
        upload_dir=settings.UPLOAD_DIR,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if config.backend not in ("local", "s3"):
        raise ValueError(f"Unknown STORAGE_BACKEND '{config.backend}'. Use 'local' or 's3'")

    if config.backend == "local":
        if not config.upload_dir:
            raise ValueError("UPLOAD_DIR is required for local storage")
        return

    if not config.access_key or not config.secret_key:
        raise ValueError("S3 access key and secret key are required")

    if not config.bucket_name:
        raise ValueError("S3 bucket name is required")

    if config.endpoint_url and not config.endpoint_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid endpoint_url: {config.endpoint_url}. "
            "Must start with http:// or https://"
        )


def build_storage(config: Optional[StorageConfig] = None) -> ObjectStoragePort:
    """Create the configured storage adapter."""
    config = config or load_storage_config()
    validate_storage_config(config)

    if config.backend == "s3":
        from .s3_storage_adapter import S3StorageAdapter
        return S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

    from .local_storage_adapter import LocalStorageAdapter
    return LocalStorageAdapter(root_dir=config.upload_dir)
