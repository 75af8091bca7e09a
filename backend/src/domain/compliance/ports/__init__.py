from .object_storage_port import ObjectStoragePort, StoredFile, StorageError, content_storage_key

__all__ = ["ObjectStoragePort", "StoredFile", "StorageError", "content_storage_key"]
