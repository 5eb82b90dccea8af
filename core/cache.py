"""
Project snapshot cache persisted to a single JSON document.

Layout on disk:

    {"projects": [[project_id, entry], ...], "tokenStats": {...}}

The document is loaded once at start-up and rewritten after every mutation.
A missing or corrupt document yields an empty cache; write failures are
reported and skipped so a read-only home directory never breaks a scan.
"""

from datetime import datetime, timedelta
import hashlib
import json
from pathlib import Path
from typing import Any, Callable, Iterator

from constants import CACHE_TTL
from core.exceptions import CacheError, FileIOError
from core.file_io import FileReader, FileWriter
from core.models import CacheEntry, ProjectSnapshot
from core.tokens import TokenLimits, TokenStats
from utils import debug, utc_now, warn


def project_id(project_path: Path | str) -> str:
    """SHA-256 hex digest of the resolved, normalized project path."""
    resolved = Path(project_path).expanduser().resolve().as_posix()
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()


def compute_content_hash(snapshot: ProjectSnapshot) -> str:
    """
    Digest the canonical JSON of a snapshot.

    captured_at and the hash itself are excluded, so two scans of an unchanged
    project produce the same digest.
    """
    data = snapshot.to_dict()
    data.pop("captured_at", None)
    data.pop("content_hash", None)
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class CacheStore:
    """
    Reads and writes the cache document.

    Attributes:
        reader: FileReader used to load the document.
        writer: FileWriter bound to the document path.
        path: Location of the document.
    """

    def __init__(self, reader: FileReader, writer: FileWriter, path: Path):
        self.reader = reader
        self.writer = writer
        self.path = path

    def load_document(self) -> dict[str, Any]:
        """
        Raises:
            CacheError: If the document cannot be read or is not valid JSON.
        """
        try:
            raw = self.reader.read_file(self.path)
        except FileIOError as e:
            raise CacheError(
                f"Failed to read cache: {self.path}", str(self.path), e
            ) from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheError(
                f"Cache document is corrupt: {self.path}", str(self.path), e
            ) from e
        if not isinstance(data, dict):
            raise CacheError(f"Cache document is not an object: {self.path}", str(self.path))
        return data

    def save_document(self, data: dict[str, Any]) -> None:
        """
        Raises:
            CacheError: If the document cannot be written.
        """
        try:
            self.writer.write_json(data)
        except FileIOError as e:
            raise CacheError(
                f"Failed to write cache: {self.path}", str(self.path), e
            ) from e


class SnapshotCache:
    """
    Time-bounded mapping from project id to cached snapshot.

    An entry is valid while `now - captured_at < ttl`. Token usage statistics
    share the same document.

    Attributes:
        store: Persistence backend, or None for a purely in-memory cache.
        ttl: Lifetime of an entry.
        clock: Source of the current time.
        limits: Limits applied to the usage counters when the document has none.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], datetime] = utc_now,
        limits: TokenLimits | None = None,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        limits = limits or TokenLimits()
        self.token_stats = TokenStats(daily_limit=limits.daily, monthly_limit=limits.monthly)
        self._load()

    def _load(self) -> None:
        if self.store is None:
            return
        try:
            document = self.store.load_document()
        except CacheError as e:
            warn(f"{e.message}; starting with an empty cache")
            return

        for item in document.get("projects", []):
            try:
                key, raw_entry = item
                self._entries[key] = CacheEntry.from_dict(raw_entry)
            except (KeyError, TypeError, ValueError) as e:
                debug("Skipping unreadable cache entry:", e)
        stats = document.get("tokenStats")
        if isinstance(stats, dict):
            try:
                self.token_stats = TokenStats.from_dict(stats)
            except (TypeError, ValueError) as e:
                debug("Ignoring unreadable token stats:", e)

    def to_document(self) -> dict[str, Any]:
        return {
            "projects": [[key, entry.to_dict()] for key, entry in self._entries.items()],
            "tokenStats": self.token_stats.to_dict(),
        }

    def persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save_document(self.to_document())
        except CacheError as e:
            warn(f"{e.message}; changes were kept in memory only")

    def get(self, project_path: Path | str) -> CacheEntry | None:
        return self._entries.get(project_id(project_path))

    def is_valid(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.captured_at < self.ttl

    def get_valid(self, project_path: Path | str) -> CacheEntry | None:
        """Return the cached entry only when it is still within its TTL."""
        entry = self.get(project_path)
        if entry is None or not self.is_valid(entry):
            return None
        return entry

    def put(
        self, project_path: Path | str, snapshot: ProjectSnapshot, plugin_name: str
    ) -> CacheEntry:
        """Replace the project's entry with a freshly captured snapshot."""
        entry = CacheEntry(
            snapshot=snapshot,
            plugin_name=plugin_name,
            captured_at=snapshot.captured_at,
        )
        self._entries[project_id(project_path)] = entry
        self.persist()
        return entry

    def invalidate(self, project_path: Path | str) -> bool:
        removed = self._entries.pop(project_id(project_path), None) is not None
        if removed:
            self.persist()
        return removed

    def entries(self) -> Iterator[tuple[str, CacheEntry]]:
        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)
