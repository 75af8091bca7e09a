"""Global FastAPI dependencies for infrastructure adapters.

Endpoints receive their storage backend and realtime registry through these
dependencies so tests can swap them with ``app.dependency_overrides``.
"""

from domain.compliance.ports import ObjectStoragePort
from infrastructure.storage.storage_config import build_storage
from notifications.registry import get_connection_registry


def get_storage() -> ObjectStoragePort:
    """Storage adapter selected by STORAGE_BACKEND (local disk or S3)."""
    return build_storage()


__all__ = ["get_storage", "get_connection_registry"]
