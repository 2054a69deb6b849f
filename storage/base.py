"""
Abstract base class for storage backends.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, BinaryIO, Dict, List, Optional, Union
from urllib.parse import quote, unquote

from storage.config import StorageConfig


# Anything a backend accepts as object content
ObjectData = Union[bytes, BinaryIO, AsyncIterator[bytes]]

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredObject:
    """An entry of a container listing."""
    name: str
    address: str


async def iter_chunks(data: ObjectData, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Normalize object content into an async iterator of chunks.

    Args:
        data: Raw bytes, a readable binary file object, or an async iterator
        chunk_size: Read size used for file objects

    Yields:
        Content chunks as bytes
    """
    if isinstance(data, (bytes, bytearray)):
        yield bytes(data)
    elif hasattr(data, "read"):
        while True:
            chunk = data.read(chunk_size)
            if not chunk:
                break
            yield chunk
    else:
        async for chunk in data:
            yield chunk


async def read_all(data: ObjectData) -> bytes:
    """Collect object content into a single bytes value."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    chunks = []
    async for chunk in iter_chunks(data):
        chunks.append(chunk)
    return b"".join(chunks)


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    A backend instance is bound to one container for its whole lifetime.
    Missing objects are reported as FileNotFoundError; everything else
    surfaces as the backend's native exception.
    """

    def __init__(self, config: StorageConfig):
        """
        Initialize storage backend.

        Args:
            config: Backend configuration
        """
        self.config = config
        self.name = config.name
        self.container = config.container

    @property
    @abstractmethod
    def base_address(self) -> str:
        """
        Prefix prepended to object names to form an address.

        Always ends with a slash.
        """

    @abstractmethod
    async def create_container_if_absent(self) -> None:
        """Create the container unless it already exists."""

    @abstractmethod
    async def set_permissions(self, policy: Optional[str]) -> None:
        """
        Apply a public access policy to the container.

        Args:
            policy: "blob", "container", or None for private access
        """

    @abstractmethod
    async def list_objects(self) -> List[StoredObject]:
        """
        List every object in the container (flat, no prefix filter).

        Returns:
            Objects in backend listing order
        """

    @abstractmethod
    async def get_object_stream(self, name: str) -> AsyncIterator[bytes]:
        """
        Read object contents as an async iterator of chunks.

        Args:
            name: Object name within the container

        Yields:
            Object content chunks as bytes

        Raises:
            FileNotFoundError: If the object does not exist
        """

    @abstractmethod
    async def put_object_stream(self, name: str, data: ObjectData) -> int:
        """
        Write an object, replacing any existing object of that name.

        Args:
            name: Object name within the container
            data: Object content

        Returns:
            Number of bytes written
        """

    @abstractmethod
    async def exists(self, name: str) -> bool:
        """Check if an object exists."""

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """
        Delete an object.

        Returns:
            True if deleted, False if not found
        """

    def address_for(self, name: str) -> str:
        """Build the absolute address of an object."""
        return f"{self.base_address}{quote(name)}"

    def name_for(self, address: str) -> str:
        """
        Resolve an address to an object name.

        Addresses under this container's base address are stripped and
        unquoted; anything else is taken to be a bare object name.
        """
        base = self.base_address
        if address.startswith(base):
            return unquote(address[len(base):])
        return address

    async def get_status(self) -> Dict[str, Any]:
        """
        Get backend status.

        Returns:
            Dictionary with backend status information
        """
        return {
            "name": self.name,
            "type": self.__class__.__name__,
            "container": self.container,
            "available": True,
        }

    async def cleanup(self) -> None:
        """Clean up backend resources."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} container={self.container}>"
