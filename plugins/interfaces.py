"""
Capability interfaces implemented by language plugins.

A language plugin is plain data plus four injected capabilities: a project
parser, a dependency analyzer, a context scorer and an optional documentation
provider. Each capability is a Protocol so production implementations and test
doubles are interchangeable without any shared base class.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from adapters.filesystem import has_matching_file
from core.models import (
    DependencyGraph,
    DependencyInfo,
    DocumentationResult,
    OutdatedDependency,
    ProjectSnapshot,
    ProjectStructure,
    RelevanceScore,
    SearchOptions,
    SecurityVulnerability,
    SourceFileDescriptor,
)


class ProjectParser(Protocol):
    """
    Turns a project directory into a ProjectStructure.

    Implementations never raise on unreadable or malformed files; they log a
    warning and return whatever partial structure could be built.
    """

    def parse_project(self, project_path: Path) -> ProjectStructure: ...

    def get_source_files(self, project_path: Path) -> list[SourceFileDescriptor]: ...

    def analyze_complexity(self, file_path: Path) -> int: ...

    def extract_metadata(self, project_path: Path) -> dict: ...


class DependencyAnalyzer(Protocol):
    """Reads a project's dependency manifests."""

    def analyze_dependencies(self, project_path: Path) -> DependencyGraph: ...

    def check_for_updates(self, project_path: Path) -> list[OutdatedDependency]: ...

    def find_vulnerabilities(self, project_path: Path) -> list[SecurityVulnerability]: ...

    def resolve_dependency_tree(self, project_path: Path) -> list[DependencyInfo]: ...


class ContextScorer(Protocol):
    """Scores source files against a task description."""

    def score_file_relevance(
        self, file_path: str, task: str, context: ProjectSnapshot | None = None
    ) -> RelevanceScore: ...

    def score_files(
        self, file_paths: list[str], task: str, context: ProjectSnapshot | None = None
    ) -> list[RelevanceScore]: ...

    def select_context_files(
        self,
        file_paths: list[str],
        task: str,
        context: ProjectSnapshot | None = None,
        max_files: int | None = None,
    ) -> list[RelevanceScore]: ...


class DocumentationProvider(Protocol):
    """Searches language or framework documentation."""

    def search(self, options: SearchOptions) -> list[DocumentationResult]: ...

    def get_api_reference(
        self, language: str, framework: str | None = None, symbol: str | None = None
    ) -> list[DocumentationResult]: ...

    def get_examples(
        self, language: str, framework: str | None = None, topic: str | None = None
    ) -> list[DocumentationResult]: ...


@dataclass(frozen=True)
class PluginMetadata:
    name: str
    version: str
    description: str
    supported_languages: tuple[str, ...]


@dataclass(frozen=True)
class LanguagePlugin:
    """
    A language plugin: identification data plus injected capabilities.

    Attributes:
        name: Unique registry key.
        display_name: Human-readable name.
        languages: Language identifiers handled by the plugin.
        file_extensions: Source suffixes used for extension sniffing.
        manifests: Lowercase manifest file names checked at the project root.
        ignore_dirs: Directory names skipped while sniffing.
        priority: Higher wins when several plugins apply to one project.
        parser: Project parser capability.
        dependency_analyzer: Dependency analyzer capability.
        context_scorer: Context scorer capability.
        documentation_provider: Optional documentation capability.
        metadata: Descriptive plugin metadata.
    """

    name: str
    display_name: str
    languages: tuple[str, ...]
    file_extensions: frozenset[str]
    manifests: frozenset[str]
    ignore_dirs: frozenset[str]
    priority: int
    parser: ProjectParser
    dependency_analyzer: DependencyAnalyzer
    context_scorer: ContextScorer
    metadata: PluginMetadata
    documentation_provider: DocumentationProvider | None = None

    def is_applicable(self, project_path: Path) -> bool:
        """
        Return True when the project looks like one this plugin handles.

        A manifest at the project root is decisive. Without one, the project
        tree is sniffed for a file with one of the plugin's extensions.
        """
        if not project_path.is_dir():
            return False
        root_names = {p.name.lower() for p in project_path.iterdir() if p.is_file()}
        if root_names & self.manifests:
            return True
        return has_matching_file(project_path, self.file_extensions, self.ignore_dirs)

    def get_priority(self) -> int:
        return self.priority
