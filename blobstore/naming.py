"""
Naming policy for uploaded files.

A naming strategy maps ``(id, sequence, part)`` to the object name the part
is stored under. Writes always overwrite, so two parts mapped to the same
name leave only the last one on the backend.
"""
from typing import Callable, Optional
from uuid import uuid4

from blobstore.models import FilePart

NamingStrategy = Callable[[Optional[str], int, FilePart], str]


def get_extension(filename: str) -> str:
    """
    Get the substring after the last dot of a filename.

    >>> get_extension("report.final.pdf")
    'pdf'
    >>> get_extension("noext")
    ''
    """
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1]


def default_naming(id: Optional[str], sequence: int, part: FilePart) -> str:
    """
    Name a part ``{id}-{sequence}.{ext}``, or ``{field_name}.{ext}`` without an id.

    The sequence is ignored when no id is given and an extension-less file
    keeps the trailing dot.
    """
    extension = get_extension(part.file_name)
    if id is None:
        return f"{part.field_name}.{extension}"
    return f"{id}-{sequence}.{extension}"


def unique_naming(id: Optional[str], sequence: int, part: FilePart) -> str:
    """Like default_naming, with a random token so names never collide."""
    extension = get_extension(part.file_name)
    stem = part.field_name if id is None else f"{id}-{sequence}"
    return f"{stem}-{uuid4().hex}.{extension}"
