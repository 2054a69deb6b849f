"""
API schemas for stored files.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from blobstore.models import FileRecord


class FileRecordResponse(BaseModel):
    """A stored object as returned by the API."""
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "address": "https://account.blob.core.windows.net/uploads/batch-0.pdf",
                    "name": "batch-0.pdf",
                    "size": 52431,
                }
            ]
        }
    )

    address: str = Field(..., description="Absolute address of the object")
    name: str = Field(..., description="Object name within the container")
    size: Optional[int] = Field(None, description="Size in bytes, when known")

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordResponse":
        return cls(address=record.address, name=record.name, size=record.size)


class UploadResponse(BaseModel):
    """Files written by one upload, in body order."""
    files: List[FileRecordResponse]
    count: int


class AddressListResponse(BaseModel):
    """Addresses of every object in the container."""
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "addresses": [
                        "https://account.blob.core.windows.net/uploads/batch-0.pdf",
                        "https://account.blob.core.windows.net/uploads/batch-1.png",
                    ],
                    "count": 2,
                }
            ]
        }
    )

    addresses: List[str]
    count: int


class DownloadRequest(BaseModel):
    """Addresses to bundle into one archive."""
    model_config = ConfigDict(extra="forbid")

    addresses: List[str] = Field(..., min_length=1, description="Object addresses or names, in archive order")
