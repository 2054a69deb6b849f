"""
S3-compatible storage backend.

Supports AWS S3, MinIO, and other S3-compatible object stores. The bucket
plays the role of the container; an optional key prefix scopes it further.
"""
from typing import Any, AsyncIterator, Dict, List, Optional

import aioboto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from storage.base import ObjectData, StorageBackend, StoredObject, read_all
from storage.config import StorageConfig

logger = structlog.get_logger()

# Public access policy -> canned bucket ACL
POLICY_ACLS = {
    None: "private",
    "blob": "public-read",
    "container": "public-read",
}

NOT_FOUND_CODES = ("404", "NoSuchKey", "NoSuchBucket", "NotFound")


class S3StorageBackend(StorageBackend):
    """S3-compatible storage backend."""

    def __init__(self, config: StorageConfig):
        """
        Initialize S3 storage backend.

        Args:
            config: Configuration with:
                - container: S3 bucket name
                - region: AWS region (optional)
                - endpoint_url: Custom endpoint for MinIO/compatible stores
                - access_key: AWS access key (optional, uses default credentials)
                - secret_key: AWS secret key (optional, uses default credentials)
                - prefix: Key prefix within bucket (optional)
        """
        super().__init__(config)
        self.bucket = config.container
        self.region = config.region
        self.endpoint_url = config.endpoint_url
        self.prefix = config.prefix.strip("/")

        self._session = aioboto3.Session()
        self._client_kwargs: Dict[str, Any] = {"region_name": self.region}

        if self.endpoint_url:
            self._client_kwargs["endpoint_url"] = self.endpoint_url

        # Check for explicit credentials in config
        if config.access_key and config.secret_key:
            self._client_kwargs["aws_access_key_id"] = config.access_key
            self._client_kwargs["aws_secret_access_key"] = config.secret_key

    def _client(self):
        return self._session.client("s3", **self._client_kwargs)

    def _key(self, name: str) -> str:
        """Get full object key including prefix."""
        if self.prefix:
            return f"{self.prefix}/{name.lstrip('/')}"
        return name.lstrip("/")

    def _name(self, key: str) -> str:
        if self.prefix:
            return key[len(self.prefix):].lstrip("/")
        return key

    @property
    def base_address(self) -> str:
        if self.endpoint_url:
            base = f"{self.endpoint_url.rstrip('/')}/{self.bucket}"
        else:
            base = f"https://{self.bucket}.s3.{self.region}.amazonaws.com"
        if self.prefix:
            base = f"{base}/{self.prefix}"
        return base + "/"

    async def create_container_if_absent(self) -> None:
        async with self._client() as client:
            try:
                await client.head_bucket(Bucket=self.bucket)
                return
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") not in NOT_FOUND_CODES:
                    raise

            create_kwargs: Dict[str, Any] = {"Bucket": self.bucket}
            if self.region != "us-east-1" and not self.endpoint_url:
                create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
            await client.create_bucket(**create_kwargs)
            logger.info("Container created", backend=self.name, bucket=self.bucket)

    async def set_permissions(self, policy: Optional[str]) -> None:
        async with self._client() as client:
            await client.put_bucket_acl(Bucket=self.bucket, ACL=POLICY_ACLS[policy])

    async def list_objects(self) -> List[StoredObject]:
        prefix = f"{self.prefix}/" if self.prefix else ""
        objects = []

        async with self._client() as client:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    name = self._name(obj["Key"])
                    objects.append(StoredObject(name=name, address=self.address_for(name)))

        return objects

    async def get_object_stream(self, name: str) -> AsyncIterator[bytes]:
        async with self._client() as client:
            try:
                response = await client.get_object(Bucket=self.bucket, Key=self._key(name))
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                    raise FileNotFoundError(f"Object not found: {name}")
                raise

            async with response["Body"] as stream:
                while True:
                    chunk = await stream.read(8192)
                    if not chunk:
                        break
                    yield chunk

    async def put_object_stream(self, name: str, data: ObjectData) -> int:
        content = await read_all(data)

        async with self._client() as client:
            await client.put_object(Bucket=self.bucket, Key=self._key(name), Body=content)

        return len(content)

    async def exists(self, name: str) -> bool:
        async with self._client() as client:
            try:
                await client.head_object(Bucket=self.bucket, Key=self._key(name))
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                    return False
                raise

    async def delete(self, name: str) -> bool:
        if not await self.exists(name):
            return False
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket, Key=self._key(name))
        return True

    async def get_status(self) -> Dict[str, Any]:
        """Get backend status."""
        try:
            async with self._client() as client:
                await client.list_objects_v2(Bucket=self.bucket, MaxKeys=1)
            available = True
        except (BotoCoreError, ClientError):
            available = False

        return {
            "name": self.name,
            "type": "s3",
            "bucket": self.bucket,
            "region": self.region,
            "endpoint_url": self.endpoint_url,
            "prefix": self.prefix,
            "base_address": self.base_address,
            "available": available,
        }
