"""
Tests for the engine module.

Tests cover:
- scan: plugin detection, caching, cached reuse, forced refresh, hash stability
- get_context / optimize: statuses, stale entry refresh, usage accounting
- analyze_dependencies: offline graph and registry update checks
- generate_docs: README/API writing, existing files, write failures
- search_docs: provider failures isolated per plugin
- stats, limits, list_plugins, close
"""

from datetime import timedelta

import pytest

from core.cache import SnapshotCache, compute_content_hash
from core.engine import ContextEngine, NOT_FOUND_MESSAGE, ReportStatus
from core.exceptions import FileWriteError
from core.file_io import MockFileReader, MockFileWriter
from core.models import (
    DependencyGraph,
    DependencyInfo,
    DocumentationResult,
    OutdatedDependency,
    ProjectStructure,
)
from plugins.registry import PluginRegistry

AUTH_SOURCE = "class AuthController:\n    def login(self):\n        return check()\n"
UTIL_SOURCE = "def pad(value):\n    return value\n"


@pytest.fixture
def project(tmp_path):
    (tmp_path / "fake.toml").write_text("name = 'demo'\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def structure(project, descriptor_factory):
    return ProjectStructure(
        name="demo",
        root_path=str(project),
        language="fake",
        project_type="library",
        source_files=(
            descriptor_factory(path="src/auth_controller.fk", language="fake"),
            descriptor_factory(path="src/util.fk", language="fake"),
        ),
    )


@pytest.fixture
def analyzer(analyzer_factory):
    graph = DependencyGraph(
        dependencies=(
            DependencyInfo("left-pad", "1.0.0", "production", "npm"),
            DependencyInfo("lodash", "4.17.0", "production", "npm"),
        ),
        dev_dependencies=(DependencyInfo("jest", "29.0.0", "development", "npm"),),
    )
    return analyzer_factory(
        graph=graph,
        outdated=[OutdatedDependency("lodash", "4.17.0", "4.17.21", "4.17.21", "production")],
        resolved=[
            DependencyInfo("left-pad", "1.0.0", "production", "npm", size_bytes=100),
            DependencyInfo("lodash", "4.17.0", "production", "npm", size_bytes=900),
        ],
    )


@pytest.fixture
def plugin(plugin_factory, structure, analyzer):
    return plugin_factory(structure=structure, analyzer=analyzer)


@pytest.fixture
def engine(plugin, clock, mocker):
    mocker.patch("core.engine.utc_now", side_effect=lambda: clock.now)
    registry = PluginRegistry()
    registry.register_plugin(plugin)
    reader = MockFileReader(
        files={"src/auth_controller.fk": AUTH_SOURCE, "src/util.fk": UTIL_SOURCE}
    )
    return ContextEngine(
        registry=registry, cache=SnapshotCache(clock=clock), file_reader=reader
    )


# ============================================================================
# Tests for scan
# ============================================================================


@pytest.mark.unit
def test_scan_without_plugin(engine, tmp_path):
    """A directory no plugin recognises should report NO_PLUGIN."""
    empty = tmp_path / "empty"
    empty.mkdir()

    report = engine.scan(empty)

    assert report.status == ReportStatus.NO_PLUGIN
    assert report.supported_plugins == ("Fake",)
    assert "No compatible language plugin found" in report.message
    assert len(engine.cache) == 0


@pytest.mark.unit
def test_scan_caches_snapshot(engine, project, plugin):
    """A first scan should parse the project and cache the snapshot."""
    report = engine.scan(project)

    assert report.status == ReportStatus.OK
    assert not report.from_cache
    assert report.plugin_display_name == "Fake"
    assert report.summary.file_count == 2
    assert report.summary.top_files == ("src/auth_controller.fk", "src/util.fk")
    entry = engine.cache.get(project)
    assert entry.plugin_name == "fake"
    assert entry.snapshot.content_hash == compute_content_hash(entry.snapshot)
    assert report.usage is not None


@pytest.mark.unit
def test_scan_reuses_valid_snapshot(engine, project, plugin):
    """A second scan within the TTL should come from the cache."""
    engine.scan(project)

    report = engine.scan(project)

    assert report.from_cache
    assert len(plugin.parser.calls) == 1


@pytest.mark.unit
def test_forced_rescan_keeps_content_hash(engine, project, plugin, clock):
    """Re-parsing an unchanged project should reproduce its content hash."""
    engine.scan(project)
    first = engine.cache.get(project).snapshot
    clock.advance(timedelta(hours=1))

    report = engine.scan(project, force_refresh=True)

    second = engine.cache.get(project).snapshot
    assert not report.from_cache
    assert len(plugin.parser.calls) == 2
    assert second.captured_at > first.captured_at
    assert second.content_hash == first.content_hash


@pytest.mark.unit
def test_scan_level_limits_listed_files(engine, project):
    """The summary should list at most the level's file count."""
    report = engine.scan(project, level="unknown-level")

    assert report.level == "unknown-level"
    assert len(report.summary.top_files) == 2


# ============================================================================
# Tests for get_context
# ============================================================================


@pytest.mark.unit
def test_get_context_requires_scan(engine, project):
    """An unscanned project should report NOT_FOUND."""
    report = engine.get_context(project, "fix login bug")

    assert report.status == ReportStatus.NOT_FOUND
    assert report.message == NOT_FOUND_MESSAGE
    assert report.result is None


@pytest.mark.unit
def test_get_context_builds_optimized_context(engine, project):
    """A scanned project should yield ranked files and optimized content."""
    engine.scan(project)

    report = engine.get_context(project, "fix login in auth controller", max_tokens=400)

    assert report.status == ReportStatus.OK
    assert report.language == "fake"
    assert report.relevant_files[0].file_path == "src/auth_controller.fk"
    assert report.result.technique == "ExtremeCompression"
    assert "src/auth_controller.fk" in report.result.content
    assert report.usage.savings.optimized_tokens == report.result.estimated_tokens


@pytest.mark.unit
def test_get_context_remembers_recent_tasks(engine, project, mocker):
    """Earlier tasks should be passed to the optimizer as previous tasks."""
    engine.scan(project)
    spy = mocker.spy(engine.optimizer, "optimize_intelligently")

    engine.get_context(project, "first task")
    engine.get_context(project, "second task")

    constraints = spy.call_args_list[1].args[2]
    assert constraints.previous_tasks == ("first task",)


@pytest.mark.unit
def test_get_context_plugin_missing(engine, project):
    """A cached project whose plugin is gone should report PLUGIN_MISSING."""
    engine.scan(project)
    engine.registry.unregister_plugin("fake")

    report = engine.get_context(project, "task")

    assert report.status == ReportStatus.PLUGIN_MISSING
    assert "fake" in report.message


@pytest.mark.unit
def test_stale_entry_is_refreshed(engine, project, plugin, clock):
    """An expired snapshot should be re-parsed before building context."""
    engine.scan(project)
    clock.advance(timedelta(hours=25))

    report = engine.get_context(project, "task")

    assert report.status == ReportStatus.OK
    assert len(plugin.parser.calls) == 2
    assert engine.cache.get_valid(project) is not None


# ============================================================================
# Tests for optimize
# ============================================================================


@pytest.mark.unit
def test_optimize_requires_scan(engine, project):
    """An unscanned project should report NOT_FOUND."""
    report = engine.optimize(project, "task")

    assert report.status == ReportStatus.NOT_FOUND
    assert not report.target_achieved


@pytest.mark.unit
def test_optimize_meets_generous_target(engine, project):
    """A generous target should be met without secondary compression."""
    engine.scan(project)

    report = engine.optimize(project, "fix login", target_tokens=5_000)

    assert report.status == ReportStatus.OK
    assert report.target_achieved
    assert not report.result.secondary_applied


@pytest.mark.unit
def test_optimize_tight_target_applies_secondary(engine, project):
    """A tight target should trigger secondary compression."""
    engine.scan(project)

    report = engine.optimize(project, "fix login", target_tokens=10)

    assert report.result.secondary_applied
    assert report.result.technique.endswith("+ Secondary")


@pytest.mark.unit
def test_optimize_uses_stale_entry_when_plugin_gone(engine, project, clock):
    """Without its plugin a stale snapshot should still be optimized as is."""
    engine.scan(project)
    engine.registry.unregister_plugin("fake")
    clock.advance(timedelta(days=2))

    report = engine.optimize(project, "task", target_tokens=5_000)

    assert report.status == ReportStatus.OK


# ============================================================================
# Tests for analyze_dependencies
# ============================================================================


@pytest.mark.unit
def test_dependencies_offline(engine, project, analyzer):
    """Without update checks the cached graph should be returned untouched."""
    engine.scan(project)

    report = engine.analyze_dependencies(project, check_updates=False)

    assert report.status == ReportStatus.OK
    assert not report.checked_updates
    assert report.graph.outdated == ()
    assert analyzer.update_checks == 0


@pytest.mark.unit
def test_dependencies_with_update_checks(engine, project, analyzer):
    """Update checks should fill in outdated packages and total size."""
    engine.scan(project)

    report = engine.analyze_dependencies(project)

    assert report.checked_updates
    assert [o.name for o in report.graph.outdated] == ["lodash"]
    assert report.graph.total_size == 1000
    assert analyzer.update_checks == 1


@pytest.mark.unit
def test_dependencies_require_scan(engine, project):
    """An unscanned project should report NOT_FOUND."""
    assert engine.analyze_dependencies(project).status == ReportStatus.NOT_FOUND


# ============================================================================
# Tests for generate_docs
# ============================================================================


@pytest.mark.unit
def test_generate_docs_requires_scan(engine, project):
    report = engine.generate_docs(project)

    assert report.status == ReportStatus.NOT_FOUND
    assert report.message == NOT_FOUND_MESSAGE
    assert not (project / "README.md").exists()


@pytest.mark.unit
def test_generate_docs_writes_readme(engine, project):
    """The README should be written into the project root."""
    engine.scan(project)

    report = engine.generate_docs(project)

    assert report.status == ReportStatus.OK
    assert report.language == "fake"
    assert report.written == ("README.md",)
    assert (project / "README.md").read_text(encoding="utf-8").startswith("# demo\n")
    assert not (project / "API.md").exists()
    assert report.usage is not None


@pytest.mark.unit
def test_generate_docs_keeps_existing_files(engine, project):
    """Existing documents should only be replaced with overwrite."""
    engine.scan(project)
    (project / "README.md").write_text("mine\n", encoding="utf-8")

    report = engine.generate_docs(project, "all")

    assert report.skipped == ("README.md",)
    assert report.written == ("API.md",)
    assert (project / "README.md").read_text(encoding="utf-8") == "mine\n"

    report = engine.generate_docs(project, "all", overwrite=True)

    assert report.written == ("README.md", "API.md")
    assert (project / "README.md").read_text(encoding="utf-8") != "mine\n"


@pytest.mark.unit
def test_generate_docs_reports_write_failures(engine, project):
    """A failed write should be reported in the result instead of raised."""
    engine.scan(project)
    engine.writer_factory = lambda path: MockFileWriter(
        raise_on_write=FileWriteError("disk full", file_path=str(path))
    )

    report = engine.generate_docs(project, "api")

    assert report.status == ReportStatus.OK
    assert report.written == ()
    assert report.failed == (("API.md", "disk full"),)


@pytest.mark.unit
def test_generate_docs_rejects_unknown_type(engine, project):
    with pytest.raises(ValueError, match="Unknown documentation type"):
        engine.generate_docs(project, "wiki")


# ============================================================================
# Tests for search_docs
# ============================================================================


class _Docs:
    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.options = []

    def search(self, options):
        self.options.append(options)
        if self.error:
            raise self.error
        return self.results

    def get_api_reference(self, language, framework=None, symbol=None):
        return []

    def get_examples(self, language, framework=None, topic=None):
        return []


@pytest.mark.unit
def test_search_docs_isolates_failures(plugin_factory):
    """A failing provider should be reported without hiding the others."""
    hit = DocumentationResult("useState", "https://react.dev", "Hook", 0.9, "MDN")
    good = _Docs([hit])
    registry = PluginRegistry()
    registry.register_plugin(
        plugin_factory(name="broken", documentation_provider=_Docs(error=RuntimeError("down")))
    )
    registry.register_plugin(plugin_factory(name="good", documentation_provider=good))
    engine = ContextEngine(registry=registry, cache=SnapshotCache())

    report = engine.search_docs("useState", framework="React")

    broken_section, good_section = report.sections
    assert broken_section.error == "down"
    assert good_section.results == (hit,)
    assert good.options[0].framework == "React"
    assert good.options[0].max_results == 3


@pytest.mark.unit
def test_search_docs_skips_plugins_without_provider(plugin_factory):
    """Plugins without documentation should contribute no section."""
    registry = PluginRegistry()
    registry.register_plugin(plugin_factory(name="plain"))
    engine = ContextEngine(registry=registry, cache=SnapshotCache())

    assert engine.search_docs("anything").sections == ()


@pytest.mark.unit
def test_search_docs_filters_by_language(plugin_factory):
    """A language filter should only consult matching plugins."""
    docs = _Docs()
    registry = PluginRegistry()
    registry.register_plugin(
        plugin_factory(name="js", languages=("javascript",), documentation_provider=docs)
    )
    registry.register_plugin(
        plugin_factory(name="py", languages=("python",), documentation_provider=_Docs())
    )
    engine = ContextEngine(registry=registry, cache=SnapshotCache())

    report = engine.search_docs("promise", language="javascript")

    assert [s.plugin_display_name for s in report.sections] == ["Js"]
    assert docs.options[0].language == "javascript"


# ============================================================================
# Tests for stats, limits and plugins
# ============================================================================


@pytest.mark.unit
def test_usage_is_shared_with_cache(engine, project):
    """Recorded usage should land in the cache's token stats."""
    engine.scan(project)
    engine.get_context(project, "task")

    assert engine.cache.token_stats is engine.tracker.stats
    assert engine.cache.token_stats.daily_usage > 0


@pytest.mark.unit
def test_stats_reset(engine, project):
    """Resetting should zero usage and report it."""
    engine.scan(project)

    report = engine.stats(detailed=True, reset=True)

    assert report.was_reset
    assert report.detailed
    assert report.stats.daily_usage == 0
    assert report.registry.plugin_names == ("fake",)


@pytest.mark.unit
def test_stats_returns_a_copy(engine):
    """Mutating the reported stats should not touch the tracker."""
    report = engine.stats()
    report.stats.daily_usage = 999

    assert engine.tracker.stats.daily_usage == 0


@pytest.mark.unit
def test_limits_show_and_set(engine):
    """limits should apply daily:N updates and report them."""
    assert engine.limits().updated is None

    report = engine.limits("daily:30000")

    assert report.updated == ("daily", 30000)
    assert engine.tracker.stats.daily_limit == 30000


@pytest.mark.unit
def test_limits_reject_bad_spec(engine):
    """An invalid limit string should raise ValueError."""
    with pytest.raises(ValueError):
        engine.limits("weekly:10")


@pytest.mark.unit
def test_list_plugins(plugin_factory):
    """Plugins should be listed, optionally filtered by language."""
    registry = PluginRegistry()
    registry.register_plugin(plugin_factory(name="js", languages=("javascript",)))
    registry.register_plugin(plugin_factory(name="py", languages=("python",)))
    engine = ContextEngine(registry=registry, cache=SnapshotCache())

    assert engine.list_plugins().total_plugins == 2
    filtered = engine.list_plugins("python")
    assert [p.name for p in filtered.plugins] == ["py"]
    assert filtered.total_plugins == 2


# ============================================================================
# Tests for close
# ============================================================================


@pytest.mark.unit
def test_close_runs_closers_once(engine):
    """Closers should run in reverse order, and only once."""
    calls = []
    engine.closers.extend([lambda: calls.append("client"), lambda: calls.append("other")])

    with engine:
        pass
    engine.close()

    assert calls == ["other", "client"]
