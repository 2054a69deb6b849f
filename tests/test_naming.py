"""
Tests for the upload naming policy.
"""
from io import BytesIO

import pytest

from blobstore.models import FilePart
from blobstore.naming import default_naming, get_extension, unique_naming


def make_part(field_name: str, file_name: str) -> FilePart:
    return FilePart(field_name=field_name, file_name=file_name, data=BytesIO(b""))


class TestGetExtension:
    """Extension is whatever follows the last dot."""

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("report.final.pdf", "pdf"),
            ("photo.PNG", "PNG"),
            ("archive.tar.gz", "gz"),
            ("noext", ""),
            ("trailing.", ""),
            (".bashrc", "bashrc"),
        ],
    )
    def test_extension(self, filename, expected):
        assert get_extension(filename) == expected


class TestDefaultNaming:
    """Names derived from id and sequence, or from the field name."""

    def test_with_id_uses_sequence(self):
        part = make_part("file", "report.pdf")

        assert default_naming("batch", 0, part) == "batch-0.pdf"
        assert default_naming("batch", 7, part) == "batch-7.pdf"

    def test_without_id_uses_field_name(self):
        part = make_part("avatar", "me.jpg")

        assert default_naming(None, 3, part) == "avatar.jpg"

    def test_without_id_ignores_sequence(self):
        part = make_part("avatar", "me.jpg")

        assert default_naming(None, 0, part) == default_naming(None, 5, part)

    def test_no_extension_keeps_trailing_dot(self):
        assert default_naming("batch", 0, make_part("file", "noext")) == "batch-0."
        assert default_naming(None, 0, make_part("file", "noext")) == "file."


class TestUniqueNaming:
    """Collision-free alternative strategy."""

    def test_names_differ_for_same_input(self):
        part = make_part("avatar", "me.jpg")

        first = unique_naming(None, 0, part)
        second = unique_naming(None, 0, part)

        assert first != second
        assert first.startswith("avatar-") and first.endswith(".jpg")

    def test_keeps_id_and_sequence(self):
        name = unique_naming("batch", 2, make_part("file", "a.txt"))

        assert name.startswith("batch-2-")
        assert name.endswith(".txt")
