"""
Custom exception classes for ctxforge.

This module defines application-specific exceptions raised during plugin
registration, project analysis, file I/O, cache persistence and optimization.
Each exception carries a human-readable message and, where relevant, the
original exception plus diagnostic data so the CLI can present a friendly
report instead of a raw traceback.
"""

import os
from typing import Optional


class NoApplicablePluginError(Exception):
    """
    Raised when no registered language plugin can analyze a project.

    This is the only hard failure of project analysis: without a plugin there
    is no parser to build a project structure from.

    Attributes:
        message: A human-readable error message.
        project_path: The project path that was inspected.
    """

    def __init__(self, project_path: str, message: Optional[str] = None):
        self.project_path = project_path
        self.message = (
            message or f"No applicable plugin found for project at {project_path}"
        )
        super().__init__(self.message)


class DuplicatePluginError(Exception):
    """
    Raised when a plugin is registered under a name that is already taken.

    Attributes:
        message: A human-readable error message.
        plugin_name: The clashing plugin name.
    """

    def __init__(self, plugin_name: str, message: Optional[str] = None):
        self.plugin_name = plugin_name
        self.message = message or f"Plugin {plugin_name} is already registered"
        super().__init__(self.message)


class FileIOError(Exception):
    """
    Base exception for file I/O operation errors.

    Attributes:
        message: A human-readable error message describing what went wrong.
        file_path: The path of the file involved, if known.
        original_exception: The underlying exception that caused this error, if any.
        diagnostic_info: A dictionary containing the exception type, details and OS name.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        file_path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "A file operation failed"
        super().__init__(self.message)
        self.file_path = file_path
        self.original_exception = original_exception
        self.diagnostic_info = {
            "type": (
                type(original_exception).__name__ if original_exception else "Unknown"
            ),
            "details": str(original_exception) if original_exception else "No details",
            "os_name": os.name,
        }


class InvalidFilePathError(FileIOError):
    """Raised when a file path is missing or cannot be written to."""


class FileReadError(FileIOError):
    """Raised when a file exists but cannot be read."""


class FileWriteError(FileIOError):
    """Raised when data cannot be written to a file."""


class CacheError(Exception):
    """
    Raised when the on-disk cache document cannot be read, decoded or written.

    The snapshot cache catches this error and falls back to an empty cache (on
    load) or skips persistence (on save); it never reaches engine callers.

    Attributes:
        message: A human-readable error message.
        cache_path: Location of the cache document, if known.
        original_exception: The underlying exception, if any.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        cache_path: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message or "The project cache could not be accessed"
        super().__init__(self.message)
        self.cache_path = cache_path
        self.original_exception = original_exception


class OptimizationError(Exception):
    """
    Raised when an optimization technique fails while producing context.

    A failed optimization is never reported as a success, so this error
    propagates to the caller.

    Attributes:
        message: A human-readable error message.
        technique: Name of the technique that failed.
        original_exception: The underlying exception, if any.
    """

    def __init__(
        self,
        technique: str,
        message: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.technique = technique
        self.message = message or f"Optimization technique {technique} failed"
        super().__init__(self.message)
        self.original_exception = original_exception


class RegistryLookupError(Exception):
    """
    Raised when a package registry (PyPI, npm) lookup fails.

    Dependency analyzers catch this per package and carry on with the rest.

    Attributes:
        message: A human-readable error message.
        package: The package being looked up.
        original_exception: The underlying exception, if any.
    """

    def __init__(
        self,
        package: str,
        message: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.package = package
        self.message = message or f"Registry lookup failed for {package}"
        super().__init__(self.message)
        self.original_exception = original_exception
