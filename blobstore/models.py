"""
Data model shared by the decoder and the blob store.
"""
from dataclasses import dataclass, field
from io import BytesIO
from typing import AsyncIterator, BinaryIO, Dict, List, Optional, Union


@dataclass(frozen=True)
class FileRecord:
    """
    An object address paired with its content.

    ``address`` is always the fully-qualified locator (container base
    address + object name). ``data`` is a binary stream positioned at the
    start in buffered mode, or an async iterator of chunks in streamed mode.
    The record is handed over to the caller and never reused.
    """
    address: str
    data: Union[BinaryIO, AsyncIterator[bytes]]
    name: str = ""
    size: Optional[int] = None

    @property
    def is_buffered(self) -> bool:
        return hasattr(self.data, "read")

    def read_bytes(self) -> bytes:
        """Return the full content of a buffered record without moving its stream."""
        if not self.is_buffered:
            raise TypeError("Streamed records must be consumed with 'async for'")
        if isinstance(self.data, BytesIO):
            return self.data.getvalue()
        position = self.data.tell()
        self.data.seek(0)
        try:
            return self.data.read()
        finally:
            self.data.seek(position)


@dataclass
class FilePart:
    """A file attachment decoded from a multipart body."""
    field_name: str
    file_name: str
    data: BytesIO
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data.getbuffer())


@dataclass
class DecodedForm:
    """Text fields and file parts of a multipart body, in decode order."""
    fields: Dict[str, str] = field(default_factory=dict)
    files: List[FilePart] = field(default_factory=list)
