"""
Core data models for project snapshots, relevance scoring and optimization.

This module defines the records exchanged between the language plugins, the
relevance scorer, the optimizer and the snapshot cache. Records describing a
parsed project are frozen: a rescan replaces them wholesale instead of
mutating them. Records persisted in the cache document expose `to_dict()` /
`from_dict()` pairs producing JSON-safe structures.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, NamedTuple

from models import FileKind

# Number of previous tasks retained on OptimizationConstraints.
MAX_PREVIOUS_TASKS = 20


def _to_iso(value: datetime) -> str:
    return value.isoformat()


def _from_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class SourceFileDescriptor:
    """
    Metadata a language parser extracts from one source file.

    Attributes:
        path: Path relative to the project root, using forward slashes. Unique
            within a project.
        language: Language identifier (e.g. "python", "typescript").
        kind: Role of the file (source, test, config, module, ...).
        size_bytes: File size on disk.
        complexity: Heuristic cyclomatic count (non-negative).
        last_modified: Modification time (timezone-aware).
        dependencies: Imported module names, in order of first appearance.
        exports: Public symbol names exported by the file.
        classes: Declared class names, in source order.
        functions: Declared function names, in source order.
    """

    path: str
    language: str
    kind: FileKind
    size_bytes: int
    complexity: int
    last_modified: datetime
    dependencies: tuple[str, ...] = ()
    exports: frozenset[str] = frozenset()
    classes: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "language": self.language,
            "kind": str(self.kind),
            "size_bytes": self.size_bytes,
            "complexity": self.complexity,
            "last_modified": _to_iso(self.last_modified),
            "dependencies": list(self.dependencies),
            "exports": sorted(self.exports),
            "classes": list(self.classes),
            "functions": list(self.functions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceFileDescriptor":
        return cls(
            path=data["path"],
            language=data["language"],
            kind=FileKind(data["kind"]),
            size_bytes=int(data["size_bytes"]),
            complexity=int(data["complexity"]),
            last_modified=_from_iso(data["last_modified"]),
            dependencies=tuple(data.get("dependencies", ())),
            exports=frozenset(data.get("exports", ())),
            classes=tuple(data.get("classes", ())),
            functions=tuple(data.get("functions", ())),
        )


@dataclass(frozen=True)
class ProjectTarget:
    """A build or executable unit declared by the project manifest."""

    name: str
    kind: str
    source_files: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "source_files": list(self.source_files),
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectTarget":
        return cls(
            name=data["name"],
            kind=data["kind"],
            source_files=tuple(data.get("source_files", ())),
            dependencies=tuple(data.get("dependencies", ())),
        )


@dataclass(frozen=True)
class DependencyInfo:
    """A single declared dependency."""

    name: str
    version: str
    scope: str
    source: str
    kind: str = "direct"
    description: str | None = None
    license: str | None = None
    homepage: str | None = None
    size_bytes: int = 0


@dataclass(frozen=True)
class DependencyConflict:
    """A package required at more than one version."""

    package: str
    versions: tuple[str, ...]
    cause: str
    resolution: str | None = None


@dataclass(frozen=True)
class OutdatedDependency:
    """A dependency whose declared version lags the registry's latest release."""

    name: str
    current_version: str
    latest_version: str
    wanted_version: str
    scope: str


@dataclass(frozen=True)
class SecurityVulnerability:
    """A known vulnerability affecting a dependency."""

    id: str
    severity: str
    title: str
    description: str
    reference: str | None = None
    fixed_in: str | None = None


@dataclass(frozen=True)
class DependencyGraph:
    """
    Dependency information produced by a language's dependency analyzer.

    Attributes:
        dependencies: Production dependencies.
        dev_dependencies: Development-only dependencies.
        optional_dependencies: Optional dependencies.
        conflicts: Packages requested at several versions.
        total_size: Sum of known package sizes in bytes (0 when unknown).
        outdated: Dependencies with newer registry releases.
    """

    dependencies: tuple[DependencyInfo, ...] = ()
    dev_dependencies: tuple[DependencyInfo, ...] = ()
    optional_dependencies: tuple[DependencyInfo, ...] = ()
    conflicts: tuple[DependencyConflict, ...] = ()
    total_size: int = 0
    outdated: tuple[OutdatedDependency, ...] = ()

    def all_dependencies(self) -> tuple[DependencyInfo, ...]:
        return self.dependencies + self.dev_dependencies + self.optional_dependencies

    def to_dict(self) -> dict[str, Any]:
        return {
            "dependencies": [asdict(d) for d in self.dependencies],
            "dev_dependencies": [asdict(d) for d in self.dev_dependencies],
            "optional_dependencies": [asdict(d) for d in self.optional_dependencies],
            "conflicts": [
                {**asdict(c), "versions": list(c.versions)} for c in self.conflicts
            ],
            "total_size": self.total_size,
            "outdated": [asdict(o) for o in self.outdated],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DependencyGraph":
        return cls(
            dependencies=tuple(
                DependencyInfo(**d) for d in data.get("dependencies", ())
            ),
            dev_dependencies=tuple(
                DependencyInfo(**d) for d in data.get("dev_dependencies", ())
            ),
            optional_dependencies=tuple(
                DependencyInfo(**d) for d in data.get("optional_dependencies", ())
            ),
            conflicts=tuple(
                DependencyConflict(**{**c, "versions": tuple(c["versions"])})
                for c in data.get("conflicts", ())
            ),
            total_size=int(data.get("total_size", 0)),
            outdated=tuple(OutdatedDependency(**o) for o in data.get("outdated", ())),
        )


@dataclass(frozen=True)
class ProjectStructure:
    """
    The parsed shape of a project, as returned by a language parser.

    Attributes:
        name: Project name (from the manifest, or the directory name).
        root_path: Absolute project root.
        language: Primary language identifier.
        project_type: Coarse project type (library, cli-tool, web-app, ...).
        framework: Detected framework name, if any.
        version: Declared project version, if any.
        targets: Build/executable units.
        source_files: Source file descriptors, one per path.
        metadata: JSON-safe extra facts (package manager, runtime version, ...).
    """

    name: str
    root_path: str
    language: str
    project_type: str
    framework: str | None = None
    version: str | None = None
    targets: tuple[ProjectTarget, ...] = ()
    source_files: tuple[SourceFileDescriptor, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def files_by_path(self) -> dict[str, SourceFileDescriptor]:
        return {f.path: f for f in self.source_files}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "root_path": self.root_path,
            "language": self.language,
            "project_type": self.project_type,
            "framework": self.framework,
            "version": self.version,
            "targets": [t.to_dict() for t in self.targets],
            "source_files": [f.to_dict() for f in self.source_files],
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectStructure":
        return cls(
            name=data["name"],
            root_path=data["root_path"],
            language=data["language"],
            project_type=data.get("project_type", "unknown"),
            framework=data.get("framework"),
            version=data.get("version"),
            targets=tuple(ProjectTarget.from_dict(t) for t in data.get("targets", ())),
            source_files=tuple(
                SourceFileDescriptor.from_dict(f) for f in data.get("source_files", ())
            ),
            metadata=dict(data.get("metadata", {})),
        )


@dataclass(frozen=True)
class ProjectSnapshot:
    """
    A project's parsed structure and dependency graph captured at one point in time.

    Owned by exactly one cache entry; a rescan builds a new snapshot.
    """

    structure: ProjectStructure
    dependency_graph: DependencyGraph
    content_hash: str
    captured_at: datetime

    @property
    def name(self) -> str:
        return self.structure.name

    @property
    def root_path(self) -> str:
        return self.structure.root_path

    @property
    def language(self) -> str:
        return self.structure.language

    @property
    def framework(self) -> str | None:
        return self.structure.framework

    @property
    def source_files(self) -> tuple[SourceFileDescriptor, ...]:
        return self.structure.source_files

    def files_by_path(self) -> dict[str, SourceFileDescriptor]:
        return self.structure.files_by_path()

    def to_dict(self) -> dict[str, Any]:
        return {
            "structure": self.structure.to_dict(),
            "dependency_graph": self.dependency_graph.to_dict(),
            "content_hash": self.content_hash,
            "captured_at": _to_iso(self.captured_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectSnapshot":
        return cls(
            structure=ProjectStructure.from_dict(data["structure"]),
            dependency_graph=DependencyGraph.from_dict(data["dependency_graph"]),
            content_hash=data["content_hash"],
            captured_at=_from_iso(data["captured_at"]),
        )


@dataclass(frozen=True)
class CacheEntry:
    """A cached snapshot together with the plugin that produced it."""

    snapshot: ProjectSnapshot
    plugin_name: str
    captured_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict(),
            "plugin_name": self.plugin_name,
            "captured_at": _to_iso(self.captured_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            snapshot=ProjectSnapshot.from_dict(data["snapshot"]),
            plugin_name=data["plugin_name"],
            captured_at=_from_iso(data["captured_at"]),
        )


@dataclass(frozen=True)
class ScoringReason:
    """One itemized contribution to a relevance score."""

    factor: str
    weight: float
    description: str


@dataclass(frozen=True)
class FileScoreMetadata:
    """File facts the scorer derived while computing a relevance score."""

    kind: FileKind
    language: str
    size_bytes: int
    complexity: int
    last_modified: datetime
    importance: str
    category: str


@dataclass(frozen=True)
class RelevanceScore:
    """
    A file's task-relative relevance.

    Attributes:
        file_path: The scored path, as passed to the scorer.
        score: Clamped to [0, 1].
        reasons: Itemized contributions, in the order they were computed.
        metadata: File facts used for scoring.
    """

    file_path: str
    score: float
    reasons: tuple[ScoringReason, ...]
    metadata: FileScoreMetadata


@dataclass(frozen=True)
class OptimizableFile:
    """The technique-facing view of a source file: its symbols plus its text."""

    path: str
    kind: FileKind = FileKind.SOURCE
    language: str = ""
    size_bytes: int = 0
    complexity: int = 0
    classes: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()
    content: str = ""

    @classmethod
    def from_descriptor(
        cls, descriptor: SourceFileDescriptor, content: str = ""
    ) -> "OptimizableFile":
        return cls(
            path=descriptor.path,
            kind=descriptor.kind,
            language=descriptor.language,
            size_bytes=descriptor.size_bytes,
            complexity=descriptor.complexity,
            classes=descriptor.classes,
            functions=descriptor.functions,
            content=content,
        )


@dataclass(frozen=True)
class OptimizationConstraints:
    """
    Budget and preferences for one optimization request.

    Attributes:
        token_budget: Maximum estimated output size, in tokens. Must be positive.
        time_constraint_ms: Time budget. Only biases technique selection.
        quality_requirement: Desired fidelity in [0, 1].
        previous_tasks: Recent task descriptions, newest last. Only the last
            MAX_PREVIOUS_TASKS are kept.

    Raises:
        ValueError: If token_budget is not positive or quality_requirement is
            outside [0, 1].
    """

    token_budget: int
    time_constraint_ms: int = 5000
    quality_requirement: float = 0.7
    previous_tasks: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.token_budget <= 0:
            raise ValueError("token_budget must be positive")
        if not 0.0 <= self.quality_requirement <= 1.0:
            raise ValueError("quality_requirement must be within [0, 1]")
        if len(self.previous_tasks) > MAX_PREVIOUS_TASKS:
            object.__setattr__(
                self, "previous_tasks", tuple(self.previous_tasks[-MAX_PREVIOUS_TASKS:])
            )


@dataclass(frozen=True)
class TechniqueOutput:
    """What a single technique produces."""

    content: str
    estimated_tokens: int
    confidence: float
    quality_score: float


@dataclass(frozen=True)
class OptimizationResult:
    """
    The outcome of an optimizer call.

    Attributes:
        content: The budgeted context text.
        estimated_tokens: Token estimate of `content`.
        technique: Display name of the technique; suffixed with " + Secondary"
            when secondary compression ran.
        confidence: Technique confidence (reduced by secondary compression).
        quality_score: Technique's self-reported quality.
        time_taken_ms: Wall-clock duration of the call.
        secondary_applied: True when secondary compression ran.
    """

    content: str
    estimated_tokens: int
    technique: str
    confidence: float
    quality_score: float
    time_taken_ms: float
    secondary_applied: bool = False


class TaskSignature(NamedTuple):
    """Composite key indexing optimization history."""

    task_prefix: str
    token_budget: int
    quality_requirement: float

    @classmethod
    def from_request(
        cls, task: str, constraints: OptimizationConstraints
    ) -> "TaskSignature":
        return cls(task[:50], constraints.token_budget, constraints.quality_requirement)


@dataclass
class TechniqueStats:
    """Running averages for one technique under one task signature."""

    usage_count: int = 0
    average_quality: float = 0.0
    average_tokens: float = 0.0

    def record(self, quality_score: float, tokens: int) -> None:
        self.usage_count += 1
        n = self.usage_count
        self.average_quality = (self.average_quality * (n - 1) + quality_score) / n
        self.average_tokens = (self.average_tokens * (n - 1) + tokens) / n


@dataclass(frozen=True)
class TokenSavings:
    """Token and cost savings of an optimized result against its source."""

    original_tokens: int
    optimized_tokens: int
    saved_tokens: int
    savings_percentage: float
    cost_savings: float


@dataclass(frozen=True)
class SearchOptions:
    """Query options for documentation providers."""

    query: str
    language: str | None = None
    framework: str | None = None
    max_results: int = 10
    include_examples: bool = False
    include_api: bool = False
    include_tutorials: bool = False


@dataclass(frozen=True)
class DocumentationResult:
    """A single documentation hit."""

    title: str
    url: str
    content: str
    relevance: float
    source: str
    tags: tuple[str, ...] = ()
    last_updated: datetime | None = None
