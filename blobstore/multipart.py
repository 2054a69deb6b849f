"""
Multipart/form-data decoding.

Wraps the callback parser from python-multipart and turns a body into a
DecodedForm. The boundary comes from the Content-Type header when one is
given, otherwise it is read off the first line of the body.
"""
from io import BytesIO
from typing import AsyncIterator, BinaryIO, Dict, List, Optional, Tuple, Union

import structlog
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, MultipartState, parse_options_header

from blobstore.errors import DecodeError
from blobstore.models import DecodedForm, FilePart

logger = structlog.get_logger()

READ_SIZE = 64 * 1024


def boundary_from_content_type(content_type: str) -> bytes:
    """
    Extract the boundary parameter of a multipart Content-Type header.

    Raises:
        DecodeError: If the header is not multipart/form-data or has no boundary
    """
    ctype, params = parse_options_header(content_type)
    if ctype.strip().lower() != b"multipart/form-data":
        raise DecodeError(
            "Content type is not multipart/form-data",
            details={"content_type": content_type},
        )
    boundary = params.get(b"boundary")
    if not boundary:
        raise DecodeError("Missing multipart boundary", details={"content_type": content_type})
    return boundary


def boundary_from_first_line(head: bytes) -> bytes:
    """
    Read the boundary off the first delimiter line of a bare body.

    Raises:
        DecodeError: If the body does not start with a ``--boundary`` line
    """
    line = head.lstrip(b"\r\n").split(b"\n", 1)[0].rstrip(b"\r")
    if not line.startswith(b"--") or len(line) <= 2:
        raise DecodeError("Body does not start with a multipart boundary")
    return line[2:]


class _FormBuilder:
    """Collects parser callbacks into fields and file parts."""

    def __init__(self, boundary: bytes, max_size: Optional[int] = None):
        self.form = DecodedForm()
        self.max_size = max_size
        self.received = 0

        self._headers: List[Tuple[bytes, bytes]] = []
        self._header_field = b""
        self._header_value = b""
        self._buffer = BytesIO()

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
        }
        self.parser = MultipartParser(boundary, callbacks)

    def _on_part_begin(self) -> None:
        self._headers = []
        self._buffer = BytesIO()

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._buffer.write(data[start:end])

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def _on_part_end(self) -> None:
        headers: Dict[bytes, bytes] = dict(self._headers)
        disposition = headers.get(b"content-disposition")
        if disposition is None:
            raise DecodeError("Multipart part is missing a Content-Disposition header")

        _, options = parse_options_header(disposition)
        field_name = options.get(b"name", b"").decode("utf-8", errors="replace")

        if b"filename" in options:
            content_type = headers.get(b"content-type")
            self._buffer.seek(0)
            self.form.files.append(
                FilePart(
                    field_name=field_name,
                    file_name=options[b"filename"].decode("utf-8", errors="replace"),
                    data=self._buffer,
                    content_type=content_type.decode("latin-1") if content_type else None,
                )
            )
        else:
            value = self._buffer.getvalue().decode("utf-8", errors="replace")
            # Repeated fields keep their first value
            self.form.fields.setdefault(field_name, value)

    def feed(self, chunk: bytes) -> None:
        self.received += len(chunk)
        if self.max_size is not None and self.received > self.max_size:
            raise DecodeError(
                "Multipart body exceeds maximum size",
                details={"max_size": self.max_size},
            )
        try:
            self.parser.write(chunk)
        except MultipartParseError as e:
            raise DecodeError(f"Malformed multipart body: {e}") from e

    def finish(self) -> DecodedForm:
        if self.parser.state != MultipartState.END:
            raise DecodeError("Multipart body is not terminated by a closing boundary")
        self.parser.finalize()
        logger.debug(
            "Multipart body decoded",
            fields=list(self.form.fields),
            files=len(self.form.files),
            size=self.received,
        )
        return self.form


class MultipartDecoder:
    """
    Decodes multipart/form-data bodies into named fields and file parts.

    The whole body is decoded before anything is returned, so a malformed
    body never yields a partial form.
    """

    def __init__(self, max_size: Optional[int] = None):
        """
        Args:
            max_size: Maximum accepted body size in bytes (None for no limit)
        """
        self.max_size = max_size

    def _builder(self, boundary: bytes) -> _FormBuilder:
        return _FormBuilder(boundary, max_size=self.max_size)

    def decode(self, data: Union[bytes, BinaryIO], content_type: Optional[str] = None) -> DecodedForm:
        """
        Decode a complete body held in memory or in a readable file object.

        Args:
            data: Body bytes or a binary stream positioned at the body start
            content_type: Optional Content-Type header carrying the boundary

        Raises:
            DecodeError: On a missing boundary or malformed framing
        """
        if isinstance(data, (bytes, bytearray)):
            stream: BinaryIO = BytesIO(bytes(data))
        else:
            stream = data

        head = stream.read(READ_SIZE)
        if content_type:
            boundary = boundary_from_content_type(content_type)
        else:
            boundary = boundary_from_first_line(head)

        builder = self._builder(boundary)
        chunk = head
        while chunk:
            builder.feed(chunk)
            chunk = stream.read(READ_SIZE)
        return builder.finish()

    async def adecode(
        self,
        chunks: AsyncIterator[bytes],
        content_type: Optional[str] = None,
    ) -> DecodedForm:
        """
        Decode a body arriving as an async iterator of chunks.

        Same contract as decode().
        """
        builder: Optional[_FormBuilder] = None
        if content_type:
            builder = self._builder(boundary_from_content_type(content_type))

        pending = b""
        async for chunk in chunks:
            if not chunk:
                continue
            if builder is None:
                # Hold data back until the first delimiter line is complete
                pending += chunk
                if b"\n" not in pending.lstrip(b"\r\n") and len(pending) < READ_SIZE:
                    continue
                builder = self._builder(boundary_from_first_line(pending))
                chunk, pending = pending, b""
            builder.feed(chunk)

        if builder is None:
            if not pending:
                raise DecodeError("Empty multipart body")
            builder = self._builder(boundary_from_first_line(pending))
            builder.feed(pending)
        return builder.finish()
