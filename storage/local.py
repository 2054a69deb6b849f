"""
Local filesystem storage backend.

The container is a directory under ``base_path``; object addresses are
``file://`` URIs.
"""
import asyncio
import os
import shutil
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import aiofiles
import aiofiles.os
import structlog

from storage.base import CHUNK_SIZE, ObjectData, StorageBackend, StoredObject, iter_chunks
from storage.config import StorageConfig

logger = structlog.get_logger()


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, config: StorageConfig):
        """
        Initialize local storage backend.

        Args:
            config: Configuration with:
                - base_path: Root directory holding containers
                - container: Directory name of the container
        """
        super().__init__(config)
        if "/" in self.container or "\\" in self.container or self.container in (".", ".."):
            raise ValueError(f"Invalid container name '{self.container}' for filesystem backend")

        self.base_path = Path(config.base_path).resolve()
        self.container_path = self.base_path / self.container
        self.policy: Optional[str] = None

    @property
    def base_address(self) -> str:
        return self.container_path.as_uri() + "/"

    def _resolve_path(self, name: str) -> Path:
        """
        Resolve and validate an object path.

        Args:
            name: Object name within the container

        Returns:
            Absolute Path object

        Raises:
            ValueError: If the name is empty or would escape the container
        """
        if not name:
            raise ValueError("Object name must not be empty")

        full_path = (self.container_path / name).resolve()

        # Security check: ensure path is within the container
        try:
            full_path.relative_to(self.container_path)
        except ValueError:
            raise ValueError(f"Object name '{name}' would escape storage container")

        return full_path

    async def create_container_if_absent(self) -> None:
        if not await aiofiles.os.path.isdir(self.container_path):
            await aiofiles.os.makedirs(self.container_path, exist_ok=True)
            logger.info("Container created", backend=self.name, path=str(self.container_path))

    async def set_permissions(self, policy: Optional[str]) -> None:
        """Filesystem access is governed by the OS; the policy is only recorded."""
        self.policy = policy

    async def list_objects(self) -> List[StoredObject]:
        if not await aiofiles.os.path.isdir(self.container_path):
            return []

        def _walk() -> List[str]:
            names = []
            for root, _, filenames in os.walk(self.container_path):
                root_path = Path(root)
                for filename in filenames:
                    names.append((root_path / filename).relative_to(self.container_path).as_posix())
            # Full-name order, as Azure and S3 list keys
            return sorted(names)

        names = await asyncio.to_thread(_walk)
        return [StoredObject(name=name, address=self.address_for(name)) for name in names]

    async def get_object_stream(self, name: str) -> AsyncIterator[bytes]:
        # A name outside the container cannot name an object in it
        if not await self.exists(name):
            raise FileNotFoundError(f"Object not found: {name}")

        full_path = self._resolve_path(name)

        async with aiofiles.open(full_path, "rb") as f:
            while True:
                chunk = await f.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

    async def put_object_stream(self, name: str, data: ObjectData) -> int:
        full_path = self._resolve_path(name)

        # Ensure parent directory exists
        await aiofiles.os.makedirs(full_path.parent, exist_ok=True)

        bytes_written = 0
        async with aiofiles.open(full_path, "wb") as f:
            async for chunk in iter_chunks(data):
                await f.write(chunk)
                bytes_written += len(chunk)

        return bytes_written

    async def exists(self, name: str) -> bool:
        try:
            full_path = self._resolve_path(name)
        except ValueError:
            return False
        return await aiofiles.os.path.isfile(full_path)

    async def delete(self, name: str) -> bool:
        try:
            full_path = self._resolve_path(name)
            if not await aiofiles.os.path.isfile(full_path):
                return False
            await aiofiles.os.remove(full_path)
            return True
        except (OSError, ValueError):
            return False

    async def get_status(self) -> Dict[str, Any]:
        """Get backend status."""
        try:
            usage = await asyncio.to_thread(shutil.disk_usage, self.base_path)
            disk_info = {
                "total": usage.total,
                "used": usage.used,
                "free": usage.free,
                "percent_used": round((usage.used / usage.total) * 100, 2),
            }
        except OSError:
            disk_info = {"error": "Unable to get disk usage"}

        return {
            "name": self.name,
            "type": "filesystem",
            "container": self.container,
            "base_path": str(self.base_path),
            "base_address": self.base_address,
            "public_access": self.policy,
            "available": self.container_path.exists(),
            "disk": disk_info,
        }
