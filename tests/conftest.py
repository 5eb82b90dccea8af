"""
Shared fixtures for the whole test suite.

Builders for descriptors, snapshots and optimizable files, a fixed clock, and a
fake language plugin assembled from test doubles.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from adapters.filesystem import discover_files
from core.models import (
    DependencyGraph,
    DependencyInfo,
    OptimizableFile,
    ProjectSnapshot,
    ProjectStructure,
    SourceFileDescriptor,
)
from core.scoring import RelevanceScorer, ScorerConfig
from models import FileKind
from plugins.interfaces import LanguagePlugin, PluginMetadata

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """A controllable clock: call it for the time, set .now to move it."""

    class _Clock:
        def __init__(self):
            self.now = NOW

        def __call__(self):
            return self.now

        def advance(self, delta: timedelta):
            self.now += delta

    return _Clock()


@pytest.fixture
def descriptor_factory():
    def _factory(
        path="src/app.py",
        language="python",
        kind=FileKind.SOURCE,
        size_bytes=1_000,
        complexity=5,
        last_modified=NOW - timedelta(days=1),
        **kwargs,
    ):
        return SourceFileDescriptor(
            path=path,
            language=language,
            kind=kind,
            size_bytes=size_bytes,
            complexity=complexity,
            last_modified=last_modified,
            **kwargs,
        )

    return _factory


@pytest.fixture
def snapshot_factory(descriptor_factory):
    def _factory(
        files=None,
        name="demo",
        root_path="/projects/demo",
        language="python",
        framework=None,
        dependencies=(),
        captured_at=NOW,
        content_hash="hash",
    ):
        if files is None:
            files = [descriptor_factory()]
        structure = ProjectStructure(
            name=name,
            root_path=root_path,
            language=language,
            project_type="library",
            framework=framework,
            source_files=tuple(files),
        )
        graph = DependencyGraph(
            dependencies=tuple(
                DependencyInfo(name=n, version=v, scope="production", source="pypi")
                for n, v in dependencies
            )
        )
        return ProjectSnapshot(
            structure=structure,
            dependency_graph=graph,
            content_hash=content_hash,
            captured_at=captured_at,
        )

    return _factory


@pytest.fixture
def optimizable_file_factory():
    def _factory(
        path="src/app.py",
        content="",
        classes=(),
        functions=(),
        language="python",
        kind=FileKind.SOURCE,
        complexity=1,
        size_bytes=100,
    ):
        return OptimizableFile(
            path=path,
            kind=kind,
            language=language,
            size_bytes=size_bytes,
            complexity=complexity,
            classes=tuple(classes),
            functions=tuple(functions),
            content=content,
        )

    return _factory


class StubParser:
    """ProjectParser double returning a fixed structure."""

    def __init__(self, structure: ProjectStructure):
        self.structure = structure
        self.calls: list[Path] = []

    def parse_project(self, project_path):
        self.calls.append(project_path)
        return self.structure

    def get_source_files(self, project_path):
        return list(self.structure.source_files)

    def analyze_complexity(self, file_path):
        return 1

    def extract_metadata(self, project_path):
        return {}


class StubAnalyzer:
    """DependencyAnalyzer double returning fixed results."""

    def __init__(self, graph=None, outdated=(), resolved=()):
        self.graph = graph or DependencyGraph()
        self.outdated = list(outdated)
        self.resolved = list(resolved)
        self.update_checks = 0

    def analyze_dependencies(self, project_path):
        return self.graph

    def check_for_updates(self, project_path):
        self.update_checks += 1
        return self.outdated

    def find_vulnerabilities(self, project_path):
        return []

    def resolve_dependency_tree(self, project_path):
        return self.resolved


@pytest.fixture
def plugin_factory():
    def _factory(
        name="fake",
        priority=50,
        manifests=frozenset({"fake.toml"}),
        extensions=frozenset({".fk"}),
        languages=("fake",),
        structure=None,
        analyzer=None,
        documentation_provider=None,
        scorer=None,
    ):
        structure = structure or ProjectStructure(
            name="demo", root_path="/projects/demo", language=languages[0], project_type="library"
        )
        return LanguagePlugin(
            name=name,
            display_name=name.capitalize(),
            languages=languages,
            file_extensions=extensions,
            manifests=manifests,
            ignore_dirs=frozenset({".git"}),
            priority=priority,
            parser=StubParser(structure),
            dependency_analyzer=analyzer or StubAnalyzer(),
            context_scorer=scorer or RelevanceScorer(ScorerConfig(language=languages[0])),
            documentation_provider=documentation_provider,
            metadata=PluginMetadata(
                name=name,
                version="1.0.0",
                description=f"{name} projects",
                supported_languages=languages,
            ),
        )

    return _factory


@pytest.fixture
def analyzer_factory():
    return StubAnalyzer


class _NoGit:
    def __init__(self, root):
        self.root = root

    def is_repo(self):
        return False


@pytest.fixture
def walk_discover():
    """discover_files forced onto the directory walk, independent of any git checkout."""

    def _discover(root, extensions=None, ignore_dirs=frozenset()):
        return discover_files(root, extensions, ignore_dirs, git_client_factory=_NoGit)

    return _discover
