"""
Tests for the file_io module.

Tests cover:
- FilesystemFileReader: reading files, binary detection, truncation, I/O errors
- FilesystemFileWriter: factory method, writing text and JSON documents
- MockFileReader: call tracking and configurable return values
- MockFileWriter: call tracking, data storage and injected failures
"""

import json
from pathlib import Path

import pytest

from core.exceptions import FileReadError, FileWriteError, InvalidFilePathError
from core.file_io import (
    FilesystemFileReader,
    FilesystemFileWriter,
    MockFileReader,
    MockFileWriter,
)


# ============================================================================
# Tests for FilesystemFileReader.read_file
# ============================================================================


@pytest.mark.unit
def test_read_file_success(tmp_path):
    """Should read a text file."""
    file_path = tmp_path / "app.py"
    file_path.write_text("print('hi')\n", encoding="utf-8")

    assert FilesystemFileReader().read_file(file_path) == "print('hi')\n"


@pytest.mark.unit
def test_read_file_nonexistent(tmp_path):
    """Should return an empty string for a missing file."""
    assert FilesystemFileReader().read_file(tmp_path / "missing.py") == ""


@pytest.mark.unit
def test_read_file_binary_with_null_bytes(tmp_path):
    """Should return an empty string for a binary file."""
    file_path = tmp_path / "blob.bin"
    file_path.write_bytes(b"\x00\x01\x02data")

    assert FilesystemFileReader().read_file(file_path) == ""


@pytest.mark.unit
def test_read_file_invalid_utf8_ignored(tmp_path):
    """Should drop invalid UTF-8 bytes instead of failing."""
    file_path = tmp_path / "latin.txt"
    file_path.write_bytes(b"caf\xe9 ok")

    assert FilesystemFileReader().read_file(file_path) == "caf ok"


@pytest.mark.unit
def test_read_file_truncates_to_max_chars(tmp_path):
    """Should stop reading after max_chars characters."""
    file_path = tmp_path / "big.py"
    file_path.write_text("x" * 500, encoding="utf-8")

    assert FilesystemFileReader(max_chars=10).read_file(file_path) == "x" * 10


@pytest.mark.mock
def test_read_file_os_error_raises_file_read_error(tmp_path, mocker):
    """Should wrap OSError raised while reading in FileReadError."""
    file_path = tmp_path / "app.py"
    file_path.write_text("data", encoding="utf-8")
    mocker.patch.object(Path, "open", side_effect=PermissionError("denied"))

    with pytest.raises(FileReadError) as exc_info:
        FilesystemFileReader().read_file(file_path)

    assert exc_info.value.file_path == str(file_path)
    assert isinstance(exc_info.value.original_exception, PermissionError)


# ============================================================================
# Tests for FilesystemFileWriter
# ============================================================================


@pytest.mark.unit
def test_from_path_missing_parent_raises(tmp_path):
    """Should refuse a path whose parent directory does not exist."""
    with pytest.raises(InvalidFilePathError):
        FilesystemFileWriter.from_path(tmp_path / "nope" / "cache.json")


@pytest.mark.unit
def test_from_path_create_parents(tmp_path):
    """Should create missing parents when asked to."""
    target = tmp_path / "a" / "b" / "cache.json"

    writer = FilesystemFileWriter.from_path(target, create_parents=True)

    assert writer.file_path == target
    assert target.parent.is_dir()


@pytest.mark.unit
def test_write_file_without_path_raises():
    """Should raise InvalidFilePathError when no path was configured."""
    with pytest.raises(InvalidFilePathError):
        FilesystemFileWriter().write_file("data")


@pytest.mark.unit
def test_write_file_and_append(tmp_path):
    """Should truncate in "w" mode and append in "a" mode."""
    target = tmp_path / "out.txt"
    writer = FilesystemFileWriter.from_path(target)

    writer.write_file("one\n")
    writer.write_file("two\n", mode="a")

    assert target.read_text(encoding="utf-8") == "one\ntwo\n"


@pytest.mark.unit
def test_write_json_replaces_content(tmp_path):
    """Should overwrite the file with a JSON document."""
    target = tmp_path / "cache.json"
    target.write_text("stale", encoding="utf-8")
    writer = FilesystemFileWriter.from_path(target)

    writer.write_json({"version": 1, "entries": {}})

    assert json.loads(target.read_text(encoding="utf-8")) == {"version": 1, "entries": {}}


@pytest.mark.unit
def test_write_json_unserializable_raises(tmp_path):
    """Should raise FileWriteError for data json cannot encode."""
    writer = FilesystemFileWriter.from_path(tmp_path / "cache.json")

    with pytest.raises(FileWriteError):
        writer.write_json({"when": object()})


# ============================================================================
# Tests for MockFileReader / MockFileWriter
# ============================================================================


@pytest.mark.mock
def test_mock_reader_return_value_takes_precedence():
    """return_value should win over the other options."""
    reader = MockFileReader(return_value="fixed", files={"a.py": "other"})

    assert reader.read_file(Path("a.py")) == "fixed"
    assert reader.read_file_calls == [Path("a.py")]


@pytest.mark.mock
def test_mock_reader_matches_path_suffix():
    """files entries should match on a path suffix."""
    reader = MockFileReader(files={"src/app.py": "body"})

    assert reader.read_file(Path("/project/src/app.py")) == "body"
    assert reader.read_file(Path("/project/src/other.py")) == ""


@pytest.mark.mock
def test_mock_writer_stores_data():
    """Should accumulate appended data when storing is enabled."""
    writer = MockFileWriter(store_written_data=True)

    writer.write_file("a")
    writer.write_file("b", mode="a")

    assert writer.written_data == "ab"
    assert writer.write_file_calls == [("a", "w"), ("b", "a")]


@pytest.mark.mock
def test_mock_writer_raise_on_write():
    """Should raise the configured exception after tracking the call."""
    writer = MockFileWriter(raise_on_write=FileWriteError("disk full"))

    with pytest.raises(FileWriteError):
        writer.write_json({"x": 1})

    assert writer.write_json_calls == [{"x": 1}]
