"""
Storage backend configuration model.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PUBLIC_ACCESS_POLICIES = ("blob", "container", "off")


class StorageConfig(BaseModel):
    """
    Connection settings for a single storage container.

    One instance describes exactly one container on one backend. Each
    BlobStore owns its own config, so two stores never share a handle.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = Field(default="filesystem", description="Backend type (filesystem, azure, s3)")
    name: str = Field(default="default", description="Backend name for identification")
    container: str = Field(..., min_length=1, description="Container (or bucket) name")

    # Filesystem
    base_path: str = Field(default="./storage", description="Root directory for the filesystem backend")

    # Azure
    connection_string: Optional[str] = None
    account_name: Optional[str] = None
    account_key: Optional[str] = None

    # S3
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    prefix: str = ""

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("container")
    @classmethod
    def strip_container(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("container name must not be blank")
        return v


def normalize_policy(policy: Optional[str]) -> Optional[str]:
    """
    Validate a public access policy.

    Returns None for private containers ("off" or None).

    Raises:
        ValueError: If the policy is not recognised
    """
    if policy is None:
        return None
    policy = policy.strip().lower()
    if policy not in PUBLIC_ACCESS_POLICIES:
        raise ValueError(
            f"Unknown public access policy '{policy}', expected one of {', '.join(PUBLIC_ACCESS_POLICIES)}"
        )
    return None if policy == "off" else policy
