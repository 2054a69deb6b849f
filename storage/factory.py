"""
Factory for creating storage backends.
"""
from typing import Any, Dict, Union

from storage.base import StorageBackend
from storage.config import StorageConfig


def create_storage_backend(config: Union[StorageConfig, Dict[str, Any]]) -> StorageBackend:
    """
    Create a storage backend from configuration.

    Args:
        config: StorageConfig or a dictionary with at least:
            - type: Backend type (filesystem, azure, s3)
            - container: Container or bucket name

    Returns:
        Configured StorageBackend instance

    Raises:
        ValueError: If backend type is unknown or config is invalid
            (pydantic's ValidationError is a ValueError)
    """
    if not isinstance(config, StorageConfig):
        config = StorageConfig.model_validate(config)

    backend_type = config.type

    if backend_type in ("filesystem", "local", "file"):
        from storage.local import LocalStorageBackend
        return LocalStorageBackend(config)

    elif backend_type in ("azure", "blob", "azure_blob"):
        from storage.azure import AzureStorageBackend
        return AzureStorageBackend(config)

    elif backend_type in ("s3", "aws", "minio"):
        from storage.s3 import S3StorageBackend
        return S3StorageBackend(config)

    else:
        raise ValueError(f"Unknown storage backend type: {backend_type}")
