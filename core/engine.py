"""
Orchestration of the context optimization pipeline.

ContextEngine ties the plugin registry, the snapshot cache, the relevance
scorer of the project's plugin, the optimizer and the token usage tracker
together behind the operations the CLI exposes:

- scan: detect the primary plugin, parse the project and cache a snapshot.
- get_context: rank cached files against a task and optimize them adaptively.
- optimize: squeeze cached files under a hard token target.
- analyze_dependencies: report the cached dependency graph, optionally
  checking package registries for newer releases.
- generate_docs: write a README and an API reference built from the snapshot.
- search_docs, stats, limits, list_plugins: supporting operations.

Every operation returns a report dataclass with a `status`. Missing
preconditions (no cached project, no applicable plugin) are reported through
the status, never raised.
"""

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Callable

from constants import CONTEXT_MODES, DOC_TYPES, OPTIMIZE_MODES, SCAN_LEVELS, TOKEN_RATIO
from core.cache import SnapshotCache, compute_content_hash
from core.config import EngineSettings
from core.docs import RENDERERS
from core.exceptions import FileIOError
from core.file_io import FileReader, FileWriter, FilesystemFileReader, FilesystemFileWriter
from core.models import (
    CacheEntry,
    DependencyGraph,
    DocumentationResult,
    MAX_PREVIOUS_TASKS,
    OptimizableFile,
    OptimizationConstraints,
    OptimizationResult,
    ProjectSnapshot,
    RelevanceScore,
    SearchOptions,
    TokenSavings,
)
from core.optimizer import ContextOptimizer
from core.tokens import TokenStats, TokenUsageTracker
from plugins.interfaces import LanguagePlugin
from plugins.registry import PluginRegistry, RegistryStats
from ui.progress_display import NoOpScanProgress, ScanProgress
from utils import debug, utc_now, warn

NOT_FOUND_MESSAGE = "Project not found in cache. Please run scan first."
NO_PLUGIN_MESSAGE = "No compatible language plugin found"

# Plugins consulted per documentation search.
SEARCH_PLUGIN_LIMIT = 2
SEARCH_RESULTS_PER_PLUGIN = 3


class ReportStatus(StrEnum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NO_PLUGIN = "no_plugin"
    PLUGIN_MISSING = "plugin_missing"


@dataclass(frozen=True)
class ProjectSummary:
    """Condensed view of a cached project, as shown after a scan."""

    name: str
    project_type: str
    language: str
    framework: str | None
    file_count: int
    target_count: int
    dependency_count: int
    plugin_name: str
    updated_at: datetime
    content_hash: str
    top_files: tuple[str, ...] = ()

    @classmethod
    def from_entry(cls, entry: CacheEntry, max_files: int = 10) -> "ProjectSummary":
        snapshot = entry.snapshot
        return cls(
            name=snapshot.name,
            project_type=snapshot.structure.project_type,
            language=snapshot.language,
            framework=snapshot.framework,
            file_count=len(snapshot.source_files),
            target_count=len(snapshot.structure.targets),
            dependency_count=len(snapshot.dependency_graph.dependencies),
            plugin_name=entry.plugin_name,
            updated_at=entry.captured_at,
            content_hash=snapshot.content_hash,
            top_files=tuple(f.path for f in snapshot.source_files[:max_files]),
        )


@dataclass(frozen=True)
class UsageReport:
    """Savings recorded for one operation and the daily tokens left afterwards."""

    savings: TokenSavings
    daily_remaining: int


@dataclass(frozen=True)
class ScanReport:
    status: ReportStatus
    project_path: str
    level: str = "extreme"
    message: str = ""
    summary: ProjectSummary | None = None
    from_cache: bool = False
    plugin_display_name: str = ""
    supported_plugins: tuple[str, ...] = ()
    usage: UsageReport | None = None


@dataclass(frozen=True)
class ContextReport:
    status: ReportStatus
    task: str
    mode: str
    message: str = ""
    language: str = ""
    result: OptimizationResult | None = None
    relevant_files: tuple[RelevanceScore, ...] = ()
    usage: UsageReport | None = None


@dataclass(frozen=True)
class OptimizeReport:
    status: ReportStatus
    task: str
    mode: str
    target_tokens: int
    message: str = ""
    language: str = ""
    result: OptimizationResult | None = None
    usage: UsageReport | None = None

    @property
    def target_achieved(self) -> bool:
        return self.result is not None and self.result.estimated_tokens <= self.target_tokens


@dataclass(frozen=True)
class DependencyReport:
    status: ReportStatus
    message: str = ""
    language: str = ""
    graph: DependencyGraph | None = None
    checked_updates: bool = False
    usage: UsageReport | None = None


@dataclass(frozen=True)
class DocsReport:
    status: ReportStatus
    doc_type: str
    message: str = ""
    language: str = ""
    written: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()
    usage: UsageReport | None = None


@dataclass(frozen=True)
class DocumentationSection:
    plugin_display_name: str
    results: tuple[DocumentationResult, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class SearchReport:
    query: str
    sections: tuple[DocumentationSection, ...] = ()
    status: ReportStatus = ReportStatus.OK


@dataclass(frozen=True)
class StatsReport:
    stats: TokenStats
    registry: RegistryStats
    detailed: bool = False
    was_reset: bool = False
    status: ReportStatus = ReportStatus.OK


@dataclass(frozen=True)
class LimitsReport:
    stats: TokenStats
    updated: tuple[str, int] | None = None
    status: ReportStatus = ReportStatus.OK


@dataclass(frozen=True)
class PluginsReport:
    plugins: tuple[LanguagePlugin, ...] = ()
    total_plugins: int = 0
    status: ReportStatus = ReportStatus.OK


@dataclass
class ContextEngine:
    """
    Single logical owner of the cache, the optimizer history and the usage counters.

    All state is mutated sequentially by the calling thread.
    """

    registry: PluginRegistry
    cache: SnapshotCache
    optimizer: ContextOptimizer = field(default_factory=ContextOptimizer)
    tracker: TokenUsageTracker | None = None
    file_reader: FileReader | None = None
    settings: EngineSettings = field(default_factory=EngineSettings)
    writer_factory: Callable[[Path], FileWriter] = FilesystemFileWriter.from_path
    closers: list[Callable[[], None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        # The tracker shares the cache's stats object so every cache write
        # persists the latest counters.
        if self.tracker is None:
            self.tracker = TokenUsageTracker(stats=self.cache.token_stats)
        else:
            self.cache.token_stats = self.tracker.stats
        if self.file_reader is None:
            self.file_reader = FilesystemFileReader(max_chars=self.settings.max_file_chars)
        self._recent_tasks: deque[str] = deque(maxlen=MAX_PREVIOUS_TASKS)

    def __enter__(self) -> "ContextEngine":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Release resources handed to the engine, such as the shared HTTP client."""
        while self.closers:
            self.closers.pop()()

    # Scan

    def scan(
        self,
        project_path: Path,
        level: str = "extreme",
        force_refresh: bool = False,
        progress: ScanProgress | None = None,
    ) -> ScanReport:
        """
        Analyze a project and cache its snapshot.

        A valid cached snapshot is reused unless force_refresh is set.

        Args:
            project_path: Root directory of the project.
            level: Scan level; controls how many files the summary lists.
            force_refresh: Re-parse even when a valid snapshot is cached.
            progress: Optional progress reporter.

        Returns:
            ScanReport with status OK or NO_PLUGIN.
        """
        max_listed = SCAN_LEVELS.get(level, SCAN_LEVELS["extreme"])
        cached = None if force_refresh else self.cache.get_valid(project_path)
        if cached is not None:
            debug("Using cached snapshot for", project_path)
            summary = ProjectSummary.from_entry(cached, max_listed)
            return ScanReport(
                status=ReportStatus.OK,
                project_path=str(project_path),
                level=level,
                summary=summary,
                from_cache=True,
                plugin_display_name=self._display_name(cached.plugin_name),
                usage=self._record_summary_usage(cached.snapshot, summary),
            )

        with progress or NoOpScanProgress() as reporter:
            reporter.on_start("Detecting language plugin", total=3)
            plugin = self.registry.detect_primary_plugin(project_path)
            if plugin is None:
                reporter.on_complete("No compatible plugin", completed=0)
                return ScanReport(
                    status=ReportStatus.NO_PLUGIN,
                    project_path=str(project_path),
                    level=level,
                    message=f"{NO_PLUGIN_MESSAGE} for project at {project_path}",
                    supported_plugins=tuple(
                        p.display_name for p in self.registry.all_plugins()
                    ),
                )

            reporter.on_update(advance=1, description=f"Parsing {plugin.display_name} project")
            entry = self._build_entry(project_path, plugin)
            reporter.on_update(advance=1, description="Caching snapshot")
            self.cache.put(project_path, entry.snapshot, plugin.name)
            reporter.on_complete(
                f"Analyzed {len(entry.snapshot.source_files)} files", completed=3
            )

        summary = ProjectSummary.from_entry(entry, max_listed)
        return ScanReport(
            status=ReportStatus.OK,
            project_path=str(project_path),
            level=level,
            summary=summary,
            plugin_display_name=plugin.display_name,
            usage=self._record_summary_usage(entry.snapshot, summary),
        )

    def _build_entry(self, project_path: Path, plugin: LanguagePlugin) -> CacheEntry:
        structure = plugin.parser.parse_project(project_path)
        graph = plugin.dependency_analyzer.analyze_dependencies(project_path)
        captured_at = utc_now()
        snapshot = ProjectSnapshot(
            structure=structure,
            dependency_graph=graph,
            content_hash="",
            captured_at=captured_at,
        )
        snapshot = replace(snapshot, content_hash=compute_content_hash(snapshot))
        return CacheEntry(snapshot=snapshot, plugin_name=plugin.name, captured_at=captured_at)

    def _load_entry(self, project_path: Path) -> CacheEntry | None:
        """
        Return the project's cache entry, refreshing it when it has gone stale.

        A stale entry is re-parsed with the plugin that produced it. When that
        plugin is no longer registered the stale entry is returned as is.
        """
        entry = self.cache.get(project_path)
        if entry is None or self.cache.is_valid(entry):
            return entry
        plugin = self.registry.get_plugin(entry.plugin_name)
        if plugin is None:
            return entry
        debug("Refreshing stale snapshot for", project_path)
        fresh = self._build_entry(project_path, plugin)
        return self.cache.put(project_path, fresh.snapshot, plugin.name)

    # Context and optimization

    def get_context(
        self,
        project_path: Path,
        task: str,
        max_tokens: int = 800,
        mode: str = "fast",
    ) -> ContextReport:
        """
        Build task-specific context for a scanned project.

        Files are ranked by the plugin's scorer, at most max_tokens // 20 of
        them are kept, and the optimizer picks a technique for the result.
        When no file clears the relevance threshold every file is used.

        Raises:
            OptimizationError: If the selected technique fails.
        """
        entry = self._load_entry(project_path)
        if entry is None:
            return ContextReport(
                status=ReportStatus.NOT_FOUND, task=task, mode=mode, message=NOT_FOUND_MESSAGE
            )
        plugin = self.registry.get_plugin(entry.plugin_name)
        if plugin is None:
            return ContextReport(
                status=ReportStatus.PLUGIN_MISSING,
                task=task,
                mode=mode,
                message=f"Plugin {entry.plugin_name} not found.",
            )

        snapshot = entry.snapshot
        selected = plugin.context_scorer.select_context_files(
            [f.path for f in snapshot.source_files],
            task,
            snapshot,
            max_files=max(1, max_tokens // 20),
        )
        selected_paths = [s.file_path for s in selected] or [
            f.path for f in snapshot.source_files
        ]

        time_ms, quality = CONTEXT_MODES.get(mode, CONTEXT_MODES["auto"])
        constraints = OptimizationConstraints(
            token_budget=max_tokens,
            time_constraint_ms=time_ms,
            quality_requirement=quality,
            previous_tasks=tuple(self._recent_tasks),
        )
        files = self._load_files(snapshot, selected_paths)
        result = self.optimizer.optimize_intelligently(
            files, task, constraints, primary_language=snapshot.language
        )
        self._recent_tasks.append(task)

        return ContextReport(
            status=ReportStatus.OK,
            task=task,
            mode=mode,
            language=snapshot.language,
            result=result,
            relevant_files=tuple(selected),
            usage=self._record_usage(self._original_tokens(files), result.estimated_tokens),
        )

    def optimize(
        self,
        project_path: Path,
        task: str,
        target_tokens: int = 300,
        mode: str = "speed",
    ) -> OptimizeReport:
        """
        Compress a scanned project's files under target_tokens.

        Raises:
            OptimizationError: If the compression technique fails.
        """
        entry = self._load_entry(project_path)
        if entry is None:
            return OptimizeReport(
                status=ReportStatus.NOT_FOUND,
                task=task,
                mode=mode,
                target_tokens=target_tokens,
                message=NOT_FOUND_MESSAGE,
            )

        snapshot = entry.snapshot
        files = self._load_files(snapshot, [f.path for f in snapshot.source_files])
        result = self.optimizer.optimize_real_time(
            files,
            task,
            target_tokens,
            OPTIMIZE_MODES.get(mode, OPTIMIZE_MODES["quality"]),
            primary_language=snapshot.language,
        )
        return OptimizeReport(
            status=ReportStatus.OK,
            task=task,
            mode=mode,
            target_tokens=target_tokens,
            language=snapshot.language,
            result=result,
            usage=self._record_usage(self._original_tokens(files), result.estimated_tokens),
        )

    def _load_files(
        self, snapshot: ProjectSnapshot, paths: list[str]
    ) -> list[OptimizableFile]:
        by_path = snapshot.files_by_path()
        root = Path(snapshot.root_path)
        files: list[OptimizableFile] = []
        for path in paths:
            descriptor = by_path.get(path)
            if descriptor is None:
                continue
            try:
                content = self.file_reader.read_file(root / path)
            except FileIOError as e:
                warn(f"Optimizing {path} without its content: {e.message}")
                content = ""
            files.append(OptimizableFile.from_descriptor(descriptor, content))
        return files

    # Dependencies

    def analyze_dependencies(
        self, project_path: Path, check_updates: bool = True
    ) -> DependencyReport:
        """
        Report the cached dependency graph of a scanned project.

        With check_updates the plugin's analyzer queries its package registry;
        the graph is returned with `outdated` filled in and `total_size`
        computed from registry metadata. Registry failures are reported as
        warnings and leave the cached graph untouched.
        """
        entry = self._load_entry(project_path)
        if entry is None:
            return DependencyReport(status=ReportStatus.NOT_FOUND, message=NOT_FOUND_MESSAGE)
        plugin = self.registry.get_plugin(entry.plugin_name)
        if plugin is None:
            return DependencyReport(
                status=ReportStatus.PLUGIN_MISSING,
                message=f"Plugin {entry.plugin_name} not found.",
            )

        graph = entry.snapshot.dependency_graph
        if check_updates:
            analyzer = plugin.dependency_analyzer
            outdated = analyzer.check_for_updates(project_path)
            resolved = analyzer.resolve_dependency_tree(project_path)
            graph = replace(
                graph,
                outdated=tuple(outdated),
                total_size=sum(d.size_bytes for d in resolved) or graph.total_size,
            )

        return DependencyReport(
            status=ReportStatus.OK,
            language=entry.snapshot.language,
            graph=graph,
            checked_updates=check_updates,
            usage=self._record_usage(
                self._graph_tokens(graph, all_entries=True), self._graph_tokens(graph)
            ),
        )

    @staticmethod
    def _graph_tokens(graph: DependencyGraph, all_entries: bool = False) -> int:
        deps = graph.all_dependencies() if all_entries else graph.dependencies[:5]
        chars = sum(len(d.name) + len(d.version) + len(d.scope) + 8 for d in deps)
        return int(chars * TOKEN_RATIO) + 1

    # Documentation

    def generate_docs(
        self, project_path: Path, doc_type: str = "readme", overwrite: bool = False
    ) -> DocsReport:
        """
        Write README.md and/or API.md for a scanned project into its root.

        Files that already exist are skipped unless overwrite is set. Write
        failures are reported per file in the result, never raised.

        Raises:
            ValueError: If doc_type is not one of DOC_TYPES.
        """
        if doc_type not in DOC_TYPES:
            raise ValueError(
                f"Unknown documentation type '{doc_type}'. Choose from: {', '.join(DOC_TYPES)}"
            )
        entry = self._load_entry(project_path)
        if entry is None:
            return DocsReport(
                status=ReportStatus.NOT_FOUND, doc_type=doc_type, message=NOT_FOUND_MESSAGE
            )

        snapshot = entry.snapshot
        written: list[str] = []
        skipped: list[str] = []
        failed: list[tuple[str, str]] = []
        generated_tokens = 0
        for file_name in DOC_TYPES[doc_type]:
            target = project_path / file_name
            if target.exists() and not overwrite:
                skipped.append(file_name)
                continue
            content = RENDERERS[file_name](snapshot)
            try:
                self.writer_factory(target).write_file(content)
            except FileIOError as e:
                warn(f"Could not write {file_name}: {e.message}")
                failed.append((file_name, e.message))
                continue
            written.append(file_name)
            generated_tokens += self.optimizer.counter.count(content)

        original = int(sum(f.size_bytes for f in snapshot.source_files) * TOKEN_RATIO)
        return DocsReport(
            status=ReportStatus.OK,
            doc_type=doc_type,
            language=snapshot.language,
            written=tuple(written),
            skipped=tuple(skipped),
            failed=tuple(failed),
            usage=self._record_usage(original, generated_tokens),
        )

    def search_docs(
        self,
        query: str,
        framework: str | None = None,
        language: str | None = None,
    ) -> SearchReport:
        """Search the documentation providers of up to two plugins."""
        plugins = (
            self.registry.plugins_for_language(language)
            if language
            else self.registry.all_plugins()
        )
        sections: list[DocumentationSection] = []
        for plugin in plugins[:SEARCH_PLUGIN_LIMIT]:
            provider = plugin.documentation_provider
            if provider is None:
                continue
            options = SearchOptions(
                query=query,
                language=language or plugin.languages[0],
                framework=framework,
                max_results=SEARCH_RESULTS_PER_PLUGIN,
            )
            try:
                results = provider.search(options)
            except Exception as e:  # noqa: BLE001
                # One broken provider must not hide the others' results
                warn(f"Failed to search {plugin.display_name} docs: {e}")
                sections.append(
                    DocumentationSection(plugin.display_name, error=str(e))
                )
                continue
            sections.append(DocumentationSection(plugin.display_name, tuple(results)))
        return SearchReport(query=query, sections=tuple(sections))

    # Usage accounting

    def stats(self, detailed: bool = False, reset: bool = False) -> StatsReport:
        if reset:
            self.tracker.reset_usage()
            self.cache.persist()
        return StatsReport(
            stats=replace(self.tracker.stats),
            registry=self.registry.stats(),
            detailed=detailed,
            was_reset=reset,
        )

    def limits(self, set_limit: str | None = None) -> LimitsReport:
        """
        Show or update token limits.

        Raises:
            ValueError: If set_limit is not of the form daily:N or monthly:N.
        """
        updated = None
        if set_limit:
            updated = self.tracker.set_limit(set_limit)
            self.cache.persist()
        return LimitsReport(stats=replace(self.tracker.stats), updated=updated)

    def list_plugins(self, language: str | None = None) -> PluginsReport:
        plugins = (
            self.registry.plugins_for_language(language)
            if language
            else self.registry.all_plugins()
        )
        return PluginsReport(
            plugins=tuple(plugins), total_plugins=self.registry.stats().total_plugins
        )

    def _display_name(self, plugin_name: str) -> str:
        plugin = self.registry.get_plugin(plugin_name)
        return plugin.display_name if plugin else plugin_name

    def _original_tokens(self, files: list[OptimizableFile]) -> int:
        counter = self.optimizer.counter
        return sum(counter.count(f.content) for f in files)

    def _record_summary_usage(
        self, snapshot: ProjectSnapshot, summary: ProjectSummary
    ) -> UsageReport:
        original = int(sum(f.size_bytes for f in snapshot.source_files) * TOKEN_RATIO)
        optimized = self.optimizer.counter.count(
            " ".join(
                str(v)
                for v in (
                    summary.name,
                    summary.project_type,
                    summary.language,
                    summary.framework,
                    *summary.top_files,
                )
            )
        )
        return self._record_usage(original, optimized)

    def _record_usage(self, original_tokens: int, optimized_tokens: int) -> UsageReport:
        savings = self.optimizer.calculate_token_savings(
            max(original_tokens, optimized_tokens), optimized_tokens
        )
        remaining = self.tracker.record_savings(savings)
        self.cache.persist()
        return UsageReport(savings=savings, daily_remaining=remaining)
