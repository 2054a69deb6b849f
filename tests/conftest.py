"""
Shared fixtures for blob store tests.

Every test runs against the filesystem backend in a temporary directory.
"""
from typing import Iterable, Tuple

import pytest

from blobstore import BlobStore
from storage.config import StorageConfig

BOUNDARY = "----blobstoretestboundary"


def encode_multipart(
    fields: Iterable[Tuple[str, str]] = (),
    files: Iterable[Tuple[str, str, bytes]] = (),
    boundary: str = BOUNDARY,
) -> Tuple[bytes, str]:
    """
    Build a multipart/form-data body.

    Returns:
        The body and its Content-Type header
    """
    parts = []
    for name, value in fields:
        parts.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode()
            + b"\r\n"
        )
    for field, filename, content in files:
        parts.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
            + content
            + b"\r\n"
        )
    parts.append(f"--{boundary}--\r\n".encode())
    return b"".join(parts), f"multipart/form-data; boundary={boundary}"


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(type="filesystem", name="test", container="uploads", base_path=str(tmp_path))


@pytest.fixture
async def store(storage_config):
    """Buffered blob store over a fresh container."""
    blob_store = await BlobStore.connect(storage_config)
    yield blob_store
    await blob_store.close()


@pytest.fixture
async def streaming_store(storage_config):
    """Blob store handing back chunk iterators instead of buffers."""
    blob_store = await BlobStore.connect(storage_config, buffered=False)
    yield blob_store
    await blob_store.close()
