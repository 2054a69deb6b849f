"""
Blob store facade.

Uploads multipart/form-data bodies as individually named objects and reads
objects back as FileRecords.

Examples:
    >>> store = await BlobStore.connect({"type": "filesystem", "container": "uploads"})
    >>> records = await store.upload(body, id="batch")
    >>> [record.address for record in records]
"""
from blobstore.errors import (
    BackendError,
    BlobStoreError,
    ConfigurationError,
    DecodeError,
    ObjectNotFoundError,
    OperationCancelledError,
)
from blobstore.models import DecodedForm, FilePart, FileRecord
from blobstore.multipart import MultipartDecoder
from blobstore.naming import NamingStrategy, default_naming, get_extension, unique_naming
from blobstore.store import BlobStore

__all__ = [
    "BackendError",
    "BlobStore",
    "BlobStoreError",
    "ConfigurationError",
    "DecodeError",
    "DecodedForm",
    "FilePart",
    "FileRecord",
    "MultipartDecoder",
    "NamingStrategy",
    "ObjectNotFoundError",
    "OperationCancelledError",
    "default_naming",
    "get_extension",
    "unique_naming",
]
