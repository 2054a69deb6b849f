"""
FastAPI dependencies for the blob store API.

Uses Annotated type aliases with Doc so routes declare what they need
without repeating Depends() calls.
"""
from typing import Annotated

from fastapi import Depends, Request
from typing_extensions import Doc

from blobstore import BlobStore


def get_blob_store(request: Request) -> BlobStore:
    """
    Get the blob store created at application startup.

    Each application owns exactly one store, held on ``app.state``.
    """
    return request.app.state.blob_store


# Typed dependency for the blob store
BlobStoreDep = Annotated[
    BlobStore,
    Depends(get_blob_store),
    Doc("Blob store bound to the configured container"),
]
