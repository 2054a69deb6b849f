"""
Azure Blob Storage backend.

Uses the asyncio client from azure-storage-blob. The container name is
lower-cased before use.
"""
import re
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog
from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob.aio import BlobServiceClient

from storage.base import ObjectData, StorageBackend, StoredObject, read_all
from storage.config import StorageConfig

logger = structlog.get_logger()

# 3-63 chars, lowercase letters, digits and single hyphens, starting and
# ending with a letter or digit
CONTAINER_NAME_RE = re.compile(r"^(?=.{3,63}$)[a-z0-9]+(-[a-z0-9]+)*$")


def build_connection_string(account_name: str, account_key: str) -> str:
    """Build a connection string from an account name and key."""
    return f"DefaultEndpointsProtocol=https;AccountName={account_name};AccountKey={account_key}"


class AzureStorageBackend(StorageBackend):
    """Azure Blob Storage backend."""

    def __init__(self, config: StorageConfig):
        """
        Initialize Azure storage backend.

        Args:
            config: Configuration with:
                - container: Azure container name
                - connection_string: Azure connection string
                - account_name: Storage account name (alternative to connection_string)
                - account_key: Storage account key (alternative to connection_string)

        Raises:
            ValueError: If credentials are missing or the container name is invalid
        """
        super().__init__(config)
        self.container = config.container.lower()

        if not CONTAINER_NAME_RE.match(self.container):
            raise ValueError(
                f"Invalid Azure container name '{self.container}': use 3-63 lowercase "
                "letters, digits or single hyphens"
            )

        if config.connection_string:
            connection_string = config.connection_string
        elif config.account_name and config.account_key:
            connection_string = build_connection_string(config.account_name, config.account_key)
        else:
            raise ValueError(
                "Azure backend requires 'connection_string' or both 'account_name' and 'account_key'"
            )

        self._service = BlobServiceClient.from_connection_string(connection_string)
        self._container_client = self._service.get_container_client(self.container)

    @property
    def base_address(self) -> str:
        return self._container_client.url.rstrip("/") + "/"

    async def create_container_if_absent(self) -> None:
        try:
            await self._container_client.create_container()
            logger.info("Container created", backend=self.name, container=self.container)
        except ResourceExistsError:
            pass

    async def set_permissions(self, policy: Optional[str]) -> None:
        await self._container_client.set_container_access_policy(
            signed_identifiers={},
            public_access=policy,
        )

    async def list_objects(self) -> List[StoredObject]:
        objects = []
        async for blob in self._container_client.list_blobs():
            objects.append(StoredObject(name=blob.name, address=self.address_for(blob.name)))
        return objects

    async def get_object_stream(self, name: str) -> AsyncIterator[bytes]:
        try:
            downloader = await self._container_client.download_blob(name)
        except ResourceNotFoundError:
            raise FileNotFoundError(f"Object not found: {name}")

        async for chunk in downloader.chunks():
            yield chunk

    async def put_object_stream(self, name: str, data: ObjectData) -> int:
        content = await read_all(data)
        await self._container_client.upload_blob(name, content, overwrite=True)
        return len(content)

    async def exists(self, name: str) -> bool:
        return await self._container_client.get_blob_client(name).exists()

    async def delete(self, name: str) -> bool:
        try:
            await self._container_client.delete_blob(name)
            return True
        except ResourceNotFoundError:
            return False

    async def get_status(self) -> Dict[str, Any]:
        """Get backend status."""
        try:
            available = await self._container_client.exists()
        except AzureError:
            available = False

        return {
            "name": self.name,
            "type": "azure",
            "container": self.container,
            "base_address": self.base_address,
            "available": available,
        }

    async def cleanup(self) -> None:
        """Close the underlying HTTP pipeline."""
        await self._container_client.close()
        await self._service.close()
