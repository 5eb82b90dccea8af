"""
Helpers shared by the language parsers.

Parsers never raise on unreadable input: manifests that cannot be read or
decoded are treated as absent, and source files that cannot be read are
reported and left out of the snapshot.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from pathlib import Path
import re
from typing import Any, Callable, Iterable

from core.exceptions import FileIOError
from core.file_io import FileReader
from core.models import SourceFileDescriptor
from models import FileKind
from utils import debug, warn


@dataclass(frozen=True)
class FileFacts:
    """What a language parser extracts from one file's text."""

    kind: FileKind
    complexity: int
    dependencies: tuple[str, ...] = ()
    exports: frozenset[str] = frozenset()
    classes: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate while keeping first-seen order."""
    return tuple(dict.fromkeys(items))


def count_patterns(content: str, patterns: Iterable[re.Pattern[str]]) -> int:
    return sum(len(p.findall(content)) for p in patterns)


def read_text(reader: FileReader, file_path: Path) -> str | None:
    """Return a file's text, or None when it is missing or unreadable."""
    if not file_path.is_file():
        return None
    try:
        return reader.read_file(file_path)
    except FileIOError as e:
        warn(f"Could not read {file_path}: {e.message}")
        return None


def read_json(reader: FileReader, file_path: Path) -> dict[str, Any] | None:
    """Return a JSON object from a manifest, or None when absent or malformed."""
    text = read_text(reader, file_path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        warn(f"Ignoring malformed {file_path.name}: {e}")
        return None
    return data if isinstance(data, dict) else None


def describe_source_files(
    root: Path,
    rel_paths: Iterable[Path],
    reader: FileReader,
    language_for: Callable[[Path], str],
    analyze: Callable[[str, str], FileFacts],
) -> list[SourceFileDescriptor]:
    """
    Build descriptors for source files, one at a time.

    Args:
        root: Project root; rel_paths are relative to it.
        rel_paths: Files to describe.
        reader: Reader used for file contents.
        language_for: Language identifier of a file.
        analyze: Extracts FileFacts from (posix path, content).

    Returns:
        Descriptors with posix paths relative to root. Unreadable files are skipped.
    """
    descriptors: list[SourceFileDescriptor] = []
    for rel in rel_paths:
        full_path = root / rel
        posix = rel.as_posix()
        try:
            stat = full_path.stat()
            content = reader.read_file(full_path)
        except (OSError, FileIOError) as e:
            warn(f"Failed to analyze file {posix}: {e}")
            continue

        facts = analyze(posix, content)
        descriptors.append(
            SourceFileDescriptor(
                path=posix,
                language=language_for(rel),
                kind=facts.kind,
                size_bytes=stat.st_size,
                complexity=facts.complexity,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                dependencies=facts.dependencies,
                exports=facts.exports,
                classes=facts.classes,
                functions=facts.functions,
            )
        )
    debug(f"Described {len(descriptors)} source files under {root}")
    return descriptors
