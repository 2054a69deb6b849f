"""
Error taxonomy for blob store operations.

Each failure kind is a distinct class so a calling layer can tell bad
input apart from an unavailable backend.
"""
from typing import Any, Dict, Optional


class BlobStoreError(Exception):
    """Base exception for blob store operations."""

    code = "blobstore_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationError(BlobStoreError):
    """Invalid connection parameters or container name."""

    code = "configuration_error"


class DecodeError(BlobStoreError):
    """The multipart body could not be parsed."""

    code = "decode_error"


class BackendError(BlobStoreError):
    """A list, read or write against the storage backend failed."""

    code = "backend_error"

    def __init__(
        self,
        message: str,
        object_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if object_name is not None:
            details.setdefault("object_name", object_name)
        super().__init__(message, details)
        self.object_name = object_name


class ObjectNotFoundError(BackendError):
    """The requested object does not exist in the container."""

    code = "not_found"


class OperationCancelledError(BlobStoreError):
    """The caller cancelled the operation between two file transfers."""

    code = "cancelled"
