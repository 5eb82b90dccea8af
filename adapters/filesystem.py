"""
Source file discovery.

Lists a project's files through git when the project is a repository and
falls back to a directory walk otherwise. Both paths skip ignored directories
and return paths relative to the project root in sorted order, so scans of an
unchanged tree produce identical file lists.
"""

import os
from pathlib import Path
from typing import Callable, Iterable

from adapters.git import GitClient
from utils import debug


def _is_ignored(rel_path: Path, ignore_dirs: frozenset[str]) -> bool:
    return any(part in ignore_dirs for part in rel_path.parts[:-1])


def walk_files(root: Path, ignore_dirs: frozenset[str]) -> Iterable[Path]:
    """Yield files under root (relative paths), pruning ignored and hidden directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in ignore_dirs and not d.startswith(".")
        )
        base = Path(dirpath)
        for name in filenames:
            yield (base / name).relative_to(root)


def discover_files(
    root: Path,
    extensions: frozenset[str] | None = None,
    ignore_dirs: frozenset[str] = frozenset(),
    git_client_factory: Callable[[Path], GitClient] = GitClient,
) -> list[Path]:
    """
    Enumerate project files, optionally restricted to a set of extensions.

    Args:
        root: Project root directory.
        extensions: Lowercase suffixes to keep (e.g. {".py"}). None keeps all files.
        ignore_dirs: Directory names whose contents are skipped.
        git_client_factory: Builds the git client for root (injectable for tests).

    Returns:
        Sorted relative paths of existing files.
    """
    git = git_client_factory(root)
    if git.is_repo():
        debug("Discovering files with git ls-files in", root)
        candidates: Iterable[Path] = (
            p for p in git.stream_file_paths() if (root / p).is_file()
        )
    else:
        debug("Discovering files by walking", root)
        candidates = walk_files(root, ignore_dirs)

    found = {
        p
        for p in candidates
        if not _is_ignored(p, ignore_dirs)
        and (extensions is None or p.suffix.lower() in extensions)
    }
    return sorted(found, key=lambda p: p.as_posix())


def has_matching_file(
    root: Path, extensions: frozenset[str], ignore_dirs: frozenset[str]
) -> bool:
    """Return True as soon as one file with a matching extension is found under root."""
    for rel in walk_files(root, ignore_dirs):
        if rel.suffix.lower() in extensions:
            return True
    return False
