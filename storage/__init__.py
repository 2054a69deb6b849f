"""
Storage backends for blob containers.

Supports the local filesystem, Azure Blob Storage, and S3-compatible stores.
"""
from storage.base import StorageBackend, StoredObject
from storage.config import StorageConfig
from storage.factory import create_storage_backend

__all__ = ["StorageBackend", "StorageConfig", "StoredObject", "create_storage_backend"]
