import json
import os
from pathlib import Path
from typing import Any, Callable, Protocol

from core.exceptions import (
    FileReadError,
    FileWriteError,
    InvalidFilePathError,
)


class FileReader(Protocol):
    """
    Protocol defining the interface for file reading operations.

    This protocol specifies methods for reading files, allowing different
    implementations for production (filesystem) and testing (mocks).
    """

    def read_file(self, file_path: Path) -> str:
        """
        Read the text content of a file as UTF-8.

        Binary files and non-existent files are skipped. Invalid UTF-8 characters are
        silently ignored (errors="ignore").

        Args:
            file_path: The path to the file to read.

        Returns:
            The file content as a string, or an empty string if the file doesn't exist
            or is binary.
        """


class FileWriter(Protocol):
    """
    Protocol defining the interface for file writing operations.

    This protocol specifies methods for writing data to files, allowing different
    implementations for production (filesystem) and testing (mocks).
    """

    def write_file(self, data: str, mode: str = "w") -> None:
        """
        Write data to a file.

        Args:
            data: String data to write.
            mode: File mode ("w" for write/truncate, "a" for append). Defaults to "w".
        """

    def write_json(self, data: dict[str, Any]) -> None:
        """
        Replace the file content with a JSON document.

        Args:
            data: JSON-serializable dictionary.
        """


class FilesystemFileReader:
    def __init__(self, max_chars: int | None = None):
        """
        Args:
            max_chars: If set, content is truncated to this many characters.
                Used when loading file bodies for the optimizer so a single
                huge file cannot dominate memory.
        """
        self.max_chars = max_chars

    def read_file(self, file_path: Path) -> str:
        """
        Read the text content of a file as UTF-8.

        Binary files and non-existent files are skipped. Invalid UTF-8 characters are
        silently ignored (errors="ignore"). I/O errors raise FileReadError.

        Args:
            file_path: The path to the file to read.

        Returns:
            The file content as a string, or an empty string if the file doesn't exist
            or is binary.

        Raises:
            FileReadError: If an I/O error occurs while reading the file.
        """

        if not file_path.is_file():
            return ""

        # We skip binary files
        if self._is_binary_file(file_path):
            return ""

        try:
            with file_path.open("r", encoding="utf-8", errors="ignore") as f:
                if self.max_chars is not None:
                    return f.read(self.max_chars)
                return f.read()
        except OSError as e:
            raise FileReadError(
                message=f"Failed to read file: {file_path}",
                file_path=str(file_path),
                original_exception=e,
            ) from e

    def _is_binary_file(self, file_path: Path) -> bool:
        """
        Determine if a file is binary by checking for null bytes in its first 1024 bytes.

        Returns:
            bool: True if the file appears to be binary, or cannot be read.
        """
        try:
            with open(file_path, "rb") as f:
                chunk = f.read(1024)
                if b"\0" in chunk:
                    return True
                return False
        except OSError:
            return True


class FilesystemFileWriter:
    def __init__(self, file_path: Path | None = None):
        self.file_path = file_path

    @classmethod
    def from_path(
        cls, file_path: Path, create_parents: bool = False
    ) -> "FilesystemFileWriter":
        """
        Create a writer instance with an explicit file path.

        Args:
            file_path: The path to the file to manage.
            create_parents: Create missing parent directories instead of failing.

        Returns:
            FilesystemFileWriter instance configured for the given path.

        Raises:
            InvalidFilePathError: If file_path is invalid (e.g., parent directory
                doesn't exist or is not writable).
        """
        parent = file_path.parent
        if not parent.exists() and create_parents:
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InvalidFilePathError(
                    message=f"Cannot create parent directory: {parent}",
                    file_path=str(file_path),
                    original_exception=e,
                ) from e
        if not parent.exists():
            raise InvalidFilePathError(
                message=f"Parent directory does not exist: {parent}",
                file_path=str(file_path),
            )
        if not os.access(parent, os.W_OK):
            raise InvalidFilePathError(
                message=f"Parent directory is not writable: {parent}",
                file_path=str(file_path),
            )

        return cls(file_path)

    def write_file(self, data: str, mode: str = "w") -> None:
        """
        Writes data to the output file.

        Args:
            data: String data to write
            mode: File mode ("w" for write/truncate, "a" for append)

        Raises:
            InvalidFilePathError: If file path is not set.
            FileWriteError: If writing to the file fails.
        """
        if self.file_path is None:
            raise InvalidFilePathError("No file path set. Use a factory method first.")

        try:
            with open(self.file_path, mode, encoding="utf-8") as f:
                f.write(data)
        except OSError as e:
            raise FileWriteError(
                message=f"Failed to write to file: {self.file_path}",
                file_path=str(self.file_path),
                original_exception=e,
            ) from e

    def write_json(self, data: dict[str, Any]) -> None:
        """
        Overwrites the output file with a JSON document.

        Raises:
            InvalidFilePathError: If file path is not set.
            FileWriteError: If the data cannot be serialized or written.
        """
        try:
            payload = json.dumps(data, indent=2)
        except (TypeError, ValueError) as e:
            raise FileWriteError(
                message=f"Failed to serialize JSON for file: {self.file_path}",
                file_path=str(self.file_path),
                original_exception=e,
            ) from e
        self.write_file(payload, mode="w")


class MockFileReader:
    """
    Mock implementation of FileReader for testing.

    Returns configurable file contents, allowing tests to control file reading
    behavior without requiring filesystem operations or actual file I/O.
    """

    def __init__(
        self,
        return_value: str | None = None,
        read_file_fn: Callable[[Path], str] | None = None,
        files: dict[str, str] | None = None,
    ):
        """
        Initialize MockFileReader with configurable reading behavior.

        Args:
            return_value: If provided, always returns this value regardless of input.
                Takes precedence over the other options.
            read_file_fn: Optional callable that takes a file path and returns file content.
            files: Optional mapping of path strings (or path suffixes) to content.
                Unknown paths read as empty strings.

        Attributes (for test inspection):
            read_file_calls: List of file paths passed to read_file()
        """
        self.return_value = return_value
        self.read_file_fn = read_file_fn
        self.files = files or {}

        # Track calls for test inspection
        self.read_file_calls: list[Path] = []

    def read_file(self, file_path: Path) -> str:
        """Read the text content of a file (returns configured value, tracks call)."""
        self.read_file_calls.append(file_path)
        if self.return_value is not None:
            return self.return_value
        if self.read_file_fn is not None:
            return self.read_file_fn(file_path)
        as_posix = Path(file_path).as_posix()
        for key, content in self.files.items():
            if as_posix == key or as_posix.endswith("/" + key):
                return content
        return ""


class MockFileWriter:
    """
    Mock implementation of FileWriter for testing.

    Tracks all method calls and optionally stores written data, allowing tests
    to verify writer interactions and inspect written content without filesystem operations.
    """

    def __init__(
        self,
        store_written_data: bool = False,
        raise_on_write: Exception | None = None,
    ):
        """
        Initialize MockFileWriter with configurable behavior.

        Args:
            store_written_data: If True, stores all written data in attributes for inspection.
            raise_on_write: If set, every write raises this exception after being tracked.

        Attributes (for test inspection):
            write_file_calls: List of tuples (data, mode) passed to write_file()
            write_json_calls: List of dictionaries passed to write_json()
            written_data: If store_written_data=True, accumulates all written string data
        """
        self.store_written_data = store_written_data
        self.raise_on_write = raise_on_write

        self.write_file_calls: list[tuple[str, str]] = []
        self.write_json_calls: list[dict[str, Any]] = []

        self.written_data: str = ""

    def write_file(self, data: str, mode: str = "w") -> None:
        self.write_file_calls.append((data, mode))
        if self.raise_on_write is not None:
            raise self.raise_on_write
        if self.store_written_data:
            if mode == "w":
                self.written_data = data
            else:  # mode == "a"
                self.written_data += data

    def write_json(self, data: dict[str, Any]) -> None:
        self.write_json_calls.append(data)
        if self.raise_on_write is not None:
            raise self.raise_on_write
        if self.store_written_data:
            self.written_data = json.dumps(data, indent=2)
