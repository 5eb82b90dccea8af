"""
Type definitions and data models used across the ctxforge application.

This module contains shared enums and TypedDict structures that are used
throughout the codebase for type safety and consistency. Richer records
(snapshots, scores, optimization results) live in `core.models`.
"""

from enum import StrEnum
from typing import TypedDict


class SupportedLanguage(StrEnum):
    """
    Enumeration of programming languages that ship with a language plugin.

    Each value is the lowercase language identifier stored on snapshots and
    source file descriptors. The keys are used to look up language heuristics
    in `constants.LANGUAGES_HEURISTICS`.
    """

    PY = "python"
    JS = "javascript"
    TS = "typescript"


class FileKind(StrEnum):
    """Role of a file inside a project, as assigned by a language parser."""

    SOURCE = "source"
    MODULE = "module"
    COMPONENT = "component"
    TYPES = "types"
    CONFIG = "config"
    TEST = "test"
    DOCUMENTATION = "documentation"
    UNKNOWN = "unknown"


class TaskClass(StrEnum):
    """
    Coarse classification of a task description.

    The optimizer classifies every task into one of these buckets before it
    asks each technique how compatible it is with the request.
    """

    DEBUG = "debug"
    IMPLEMENTATION = "implementation"
    REFACTORING = "refactoring"
    TESTING = "testing"
    GENERAL = "general"


class LanguagesHeuristics(TypedDict):
    """
    Type definition for language-specific heuristics configuration.

    Attributes:
        manifests: File names (lowercase) whose presence at the project root
            marks a project of this language (e.g. "package.json").
        extensions: Source file extensions used for extension sniffing and
            source discovery (e.g. ".py", ".ts").
        ignore_dirs: Directory names that are never walked (virtualenvs,
            build output, dependency folders).
        priority: Plugin priority used to break ties in polyglot projects.
    """

    manifests: frozenset[str]
    extensions: frozenset[str]
    ignore_dirs: frozenset[str]
    priority: int
