"""
Blob store orchestration.

Turns multipart uploads into individually named objects and aggregates
object reads into ordered collections of FileRecord.
"""
import asyncio
from contextlib import contextmanager
from io import BytesIO
from typing import Any, AsyncIterator, BinaryIO, Dict, Iterator, List, Optional, Sequence, Union

import structlog

from blobstore.errors import (
    BackendError,
    BlobStoreError,
    ConfigurationError,
    ObjectNotFoundError,
    OperationCancelledError,
)
from blobstore.models import FileRecord
from blobstore.multipart import MultipartDecoder
from blobstore.naming import NamingStrategy, default_naming
from storage import StorageBackend, StorageConfig, create_storage_backend
from storage.config import normalize_policy

logger = structlog.get_logger()

UploadContent = Union[bytes, BinaryIO, AsyncIterator[bytes]]


@contextmanager
def backend_errors(action: str, object_name: Optional[str] = None) -> Iterator[None]:
    """Translate backend exceptions into the BackendError family."""
    try:
        yield
    except BlobStoreError:
        raise
    except FileNotFoundError as e:
        raise ObjectNotFoundError(f"Object not found: {object_name}", object_name=object_name) from e
    except Exception as e:
        logger.error("Backend operation failed", action=action, object_name=object_name, error=str(e))
        raise BackendError(f"Failed to {action}: {e}", object_name=object_name) from e


def check_cancelled(cancellation: Optional[asyncio.Event], operation: str, completed: int) -> None:
    if cancellation is not None and cancellation.is_set():
        raise OperationCancelledError(
            f"{operation} cancelled",
            details={"operation": operation, "completed": completed},
        )


class BlobStore:
    """
    Facade over one storage container.

    Every upload overwrites objects of the same name (last write wins);
    choose a naming strategy that yields distinct names to avoid it.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        naming: NamingStrategy = default_naming,
        buffered: bool = True,
        decoder: Optional[MultipartDecoder] = None,
    ):
        """
        Args:
            backend: Storage backend bound to the container
            naming: Strategy mapping (id, sequence, part) to an object name
            buffered: Read downloads fully into memory (True) or hand back
                the backend's chunk iterator (False)
            decoder: Multipart decoder, a default one if omitted
        """
        self.backend = backend
        self.naming = naming
        self.buffered = buffered
        self.decoder = decoder or MultipartDecoder()

    @classmethod
    async def connect(
        cls,
        config: Union[StorageConfig, Dict[str, Any]],
        *,
        public_access: Optional[str] = "blob",
        naming: NamingStrategy = default_naming,
        buffered: bool = True,
        max_upload_size: Optional[int] = None,
    ) -> "BlobStore":
        """
        Create a backend from config, provision its container and wrap it.

        The container is created if absent and given the public access
        policy (public read on blobs unless told otherwise).

        Raises:
            ConfigurationError: Invalid connection parameters or container name
            BackendError: The container could not be created or configured
        """
        try:
            policy = normalize_policy(public_access)
            backend = create_storage_backend(config)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        with backend_errors("provision container", backend.container):
            await backend.create_container_if_absent()
            await backend.set_permissions(policy)

        logger.info(
            "Blob store connected",
            backend=backend.name,
            container=backend.container,
            public_access=policy,
            buffered=buffered,
        )
        return cls(
            backend,
            naming=naming,
            buffered=buffered,
            decoder=MultipartDecoder(max_size=max_upload_size),
        )

    @property
    def base_address(self) -> str:
        return self.backend.base_address

    @property
    def supports_streaming(self) -> bool:
        return not self.buffered

    async def list_addresses(self) -> List[str]:
        """Get the address of every object in the container, in listing order."""
        with backend_errors("list objects"):
            objects = await self.backend.list_objects()
        return [obj.address for obj in objects]

    async def upload(
        self,
        content: UploadContent,
        id: Optional[str] = None,
        *,
        content_type: Optional[str] = None,
        cancellation: Optional[asyncio.Event] = None,
    ) -> List[FileRecord]:
        """
        Upload every file of a multipart/form-data body.

        The body is decoded completely before the first write. Files are
        named by the naming strategy from the effective id (the argument,
        else the form field "id") and their zero-based position in the body.

        Args:
            content: Body bytes, a binary stream, or an async iterator of chunks
            id: Name shared by all files of this upload
            content_type: Content-Type header of the body, if known
            cancellation: Event checked before each file is written

        Returns:
            One FileRecord per file part, in body order

        Raises:
            DecodeError: The body is not valid multipart/form-data
            BackendError: A write failed; earlier files of the batch remain
            OperationCancelledError: Cancellation was requested
        """
        if hasattr(content, "__aiter__"):
            form = await self.decoder.adecode(content, content_type)
        else:
            form = self.decoder.decode(content, content_type)

        if id is None:
            id = form.fields.get("id")

        records: List[FileRecord] = []
        written = set()
        for sequence, part in enumerate(form.files):
            check_cancelled(cancellation, "upload", len(records))

            name = self.naming(id, sequence, part)
            if name in written:
                logger.warning("Object name reused within upload, overwriting", object_name=name, sequence=sequence)
            written.add(name)

            with backend_errors("write object", name):
                size = await self.backend.put_object_stream(name, part.data)

            part.data.seek(0)
            records.append(
                FileRecord(address=self.backend.address_for(name), data=part.data, name=name, size=size)
            )

        logger.info(
            "Files uploaded",
            container=self.backend.container,
            id=id,
            files=len(records),
            names=[record.name for record in records],
        )
        return records

    async def download(self, address: str, *, cancellation: Optional[asyncio.Event] = None) -> FileRecord:
        """
        Download one object.

        Args:
            address: Full address under this container, or a bare object name

        Raises:
            ObjectNotFoundError: The object does not exist
            BackendError: The read failed
        """
        check_cancelled(cancellation, "download", 0)
        return await self._fetch(self.backend.name_for(address))

    async def download_many(
        self,
        addresses: Sequence[str],
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> List[FileRecord]:
        """
        Download several objects, one fetch each, in input order.

        The first failure aborts the remaining fetches and nothing is returned.
        """
        records: List[FileRecord] = []
        for address in addresses:
            check_cancelled(cancellation, "download", len(records))
            records.append(await self._fetch(self.backend.name_for(address)))
        return records

    async def download_all(self, *, cancellation: Optional[asyncio.Event] = None) -> List[FileRecord]:
        """
        Download every object of the container, in listing order.

        Not a snapshot: objects written while this runs may or may not appear.
        """
        with backend_errors("list objects"):
            objects = await self.backend.list_objects()

        records: List[FileRecord] = []
        for obj in objects:
            check_cancelled(cancellation, "download_all", len(records))
            records.append(await self._fetch(obj.name))

        logger.info("Container downloaded", container=self.backend.container, files=len(records))
        return records

    async def _fetch(self, name: str) -> FileRecord:
        address = self.backend.address_for(name)
        if not self.buffered:
            # Report a missing object now rather than on first iteration
            with backend_errors("read object", name):
                found = await self.backend.exists(name)
            if not found:
                raise ObjectNotFoundError(f"Object not found: {name}", object_name=name)
            return FileRecord(address=address, data=self._stream(name), name=name)

        buffer = BytesIO()
        with backend_errors("read object", name):
            async for chunk in self.backend.get_object_stream(name):
                buffer.write(chunk)
        size = buffer.tell()
        buffer.seek(0)
        return FileRecord(address=address, data=buffer, name=name, size=size)

    async def _stream(self, name: str) -> AsyncIterator[bytes]:
        with backend_errors("read object", name):
            async for chunk in self.backend.get_object_stream(name):
                yield chunk

    async def close(self) -> None:
        await self.backend.cleanup()

    async def __aenter__(self) -> "BlobStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<BlobStore backend={self.backend!r} buffered={self.buffered}>"
