"""
Tests for the report rendering module.

Tests cover:
- format_usage and format_summary
- render_* output for successful and failed reports, including docs
- Rich markup in user-provided text is printed literally

Output is captured with capsys; Rich writes plain text when stdout is not a terminal.
"""

from datetime import datetime, timezone

import pytest

from core.engine import (
    ContextReport,
    DependencyReport,
    DocsReport,
    DocumentationSection,
    LimitsReport,
    OptimizeReport,
    PluginsReport,
    ProjectSummary,
    ReportStatus,
    ScanReport,
    SearchReport,
    StatsReport,
    UsageReport,
)
from core.models import (
    DependencyConflict,
    DependencyGraph,
    DependencyInfo,
    DocumentationResult,
    FileScoreMetadata,
    OptimizationResult,
    OutdatedDependency,
    RelevanceScore,
    ScoringReason,
    TokenSavings,
)
from core.tokens import TokenStats
from models import FileKind
from plugins.registry import RegistryStats
from ui.report import (
    format_summary,
    format_usage,
    render_context,
    render_dependencies,
    render_docs,
    render_limits,
    render_optimize,
    render_plugins,
    render_scan,
    render_search,
    render_stats,
)

UPDATED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def usage():
    return UsageReport(
        savings=TokenSavings(
            original_tokens=1_000,
            optimized_tokens=250,
            saved_tokens=750,
            savings_percentage=75.0,
            cost_savings=0.01,
        ),
        daily_remaining=49_000,
    )


@pytest.fixture
def summary():
    return ProjectSummary(
        name="demo",
        project_type="library",
        language="python",
        framework=None,
        file_count=2,
        target_count=1,
        dependency_count=3,
        plugin_name="python",
        updated_at=UPDATED,
        content_hash="abc",
        top_files=("src/app.py", "src/auth.py"),
    )


@pytest.fixture
def result():
    return OptimizationResult(
        content="def login(): ...",
        estimated_tokens=40,
        technique="Extreme Compression",
        confidence=0.8,
        quality_score=0.7,
        time_taken_ms=1.5,
    )


def _dep(name, version="1.0.0"):
    return DependencyInfo(name=name, version=version, scope="production", source="pypi")


# ============================================================================
# Tests for formatting helpers
# ============================================================================


@pytest.mark.unit
def test_format_usage(usage):
    assert format_usage(usage) == (
        "[green]Saved: 750 tokens (75.0%)[/green] | Cost: $0.010 | Remaining: 49,000 tokens today"
    )


@pytest.mark.unit
def test_format_summary(summary):
    text = format_summary(summary)

    assert "Project: [bold]demo[/bold]" in text
    assert "Framework: None" in text
    assert "Files: 2" in text
    assert "Updated: 2025-03-01" in text


# ============================================================================
# Tests for render_scan
# ============================================================================


@pytest.mark.unit
def test_render_scan_no_plugin(capsys):
    report = ScanReport(
        status=ReportStatus.NO_PLUGIN,
        project_path="/tmp/x",
        message="No applicable plugin found",
        supported_plugins=("javascript", "python"),
    )

    render_scan(report)

    out = capsys.readouterr().out
    assert "Error: No applicable plugin found" in out
    assert "Supported languages: javascript, python" in out


@pytest.mark.unit
def test_render_scan_summary(capsys, summary, usage):
    report = ScanReport(
        status=ReportStatus.OK,
        project_path="/projects/demo",
        summary=summary,
        from_cache=True,
        usage=usage,
    )

    render_scan(report)

    out = capsys.readouterr().out
    assert "Project: demo" in out
    assert "Dependencies: 3" in out
    assert "src/auth.py" in out
    assert "Saved: 750 tokens (75.0%)" in out


# ============================================================================
# Tests for render_context / render_optimize
# ============================================================================


@pytest.mark.unit
def test_render_context_failure(capsys):
    render_context(
        ContextReport(
            status=ReportStatus.NOT_FOUND,
            task="fix",
            mode="fast",
            message="Project not found. Run 'ctxforge scan' first.",
        )
    )

    out = capsys.readouterr().out
    assert "Project not found" in out
    assert "Technique" not in out


@pytest.mark.unit
def test_render_context_with_scores(capsys, result):
    score = RelevanceScore(
        file_path="src/auth.py",
        score=0.91,
        reasons=(ScoringReason("auth_relevance", 0.3, "Auth file"),),
        metadata=FileScoreMetadata(
            kind=FileKind.SOURCE,
            language="python",
            size_bytes=100,
            complexity=3,
            last_modified=UPDATED,
            importance="high",
            category="core",
        ),
    )
    report = ContextReport(
        status=ReportStatus.OK,
        task="fix [bold]login",
        mode="fast",
        language="python",
        result=result,
        relevant_files=(score,),
    )

    render_context(report, show_scores=True)

    out = capsys.readouterr().out
    assert 'Context for: "fix [bold]login"' in out
    assert "Relevant files: 1" in out
    assert "src/auth.py" in out
    assert "0.91" in out
    assert "Technique: Extreme Compression" in out
    assert "def login(): ..." in out


@pytest.mark.unit
@pytest.mark.parametrize("target, marker", [(100, "OK"), (10, "OVER")])
def test_render_optimize_marks_target(capsys, result, target, marker):
    report = OptimizeReport(
        status=ReportStatus.OK,
        task="fix",
        mode="fast",
        target_tokens=target,
        language="python",
        result=result,
    )

    render_optimize(report)

    out = capsys.readouterr().out
    assert f"Target: 40/{target} tokens {marker}" in out


# ============================================================================
# Tests for render_dependencies
# ============================================================================


@pytest.mark.unit
def test_render_dependencies(capsys, usage):
    graph = DependencyGraph(
        dependencies=tuple(_dep(f"pkg{i}") for i in range(7)),
        dev_dependencies=(_dep("pytest"),),
        conflicts=(
            DependencyConflict(
                package="pkg1",
                versions=("1.0.0", "2.0.0"),
                cause="Multiple versions required",
                resolution="Use 1.0.0",
            ),
        ),
        outdated=(
            OutdatedDependency(
                name="pkg0",
                current_version="1.0.0",
                latest_version="1.2.0",
                wanted_version="1.2.0",
                scope="production",
            ),
        ),
        total_size=12_345,
    )
    report = DependencyReport(
        status=ReportStatus.OK, language="python", graph=graph, checked_updates=True, usage=usage
    )

    render_dependencies(report)

    out = capsys.readouterr().out
    assert "pkg4" in out
    assert "pkg5" not in out
    assert "... and 2 more" in out
    assert "1.2.0" in out
    assert "Development: 1 | Optional: 0" in out
    assert "Updates available: 1" in out
    assert "Total size: 12,345 bytes" in out
    assert "1 dependency conflicts detected" in out
    assert "pkg1: 1.0.0, 2.0.0 (Use 1.0.0)" in out


@pytest.mark.unit
def test_render_dependencies_without_update_check(capsys):
    report = DependencyReport(
        status=ReportStatus.OK, language="python", graph=DependencyGraph(dependencies=(_dep("a"),))
    )

    render_dependencies(report)

    assert "Updates available" not in capsys.readouterr().out


# ============================================================================
# Tests for render_docs
# ============================================================================


@pytest.mark.unit
def test_render_docs(capsys, usage):
    report = DocsReport(
        status=ReportStatus.OK,
        doc_type="all",
        language="python",
        written=("API.md",),
        skipped=("README.md",),
        failed=(("CHANGES.md", "disk [full]"),),
        usage=usage,
    )

    render_docs(report)

    out = capsys.readouterr().out
    assert "Documentation generated for python project" in out
    assert "Wrote API.md" in out
    assert "Skipped README.md (already exists, use --force to overwrite)" in out
    assert "Could not write CHANGES.md: disk [full]" in out
    assert "Saved: 750 tokens" in out


@pytest.mark.unit
def test_render_docs_not_found(capsys):
    render_docs(
        DocsReport(status=ReportStatus.NOT_FOUND, doc_type="readme", message="Project not found")
    )

    out = capsys.readouterr().out
    assert "Error: Project not found" in out
    assert "Wrote" not in out


# ============================================================================
# Tests for render_search
# ============================================================================


@pytest.mark.unit
def test_render_search_sections(capsys):
    doc = DocumentationResult(
        title="Python asyncio",
        url="https://docs.python.org/3/library/asyncio.html",
        content="",
        relevance=0.9,
        source="Python Docs",
    )
    report = SearchReport(
        query="asyncio",
        sections=(
            DocumentationSection("JavaScript/TypeScript", error="timeout"),
            DocumentationSection("Python", results=(doc,)),
        ),
    )

    render_search(report)

    out = capsys.readouterr().out
    assert "Failed to search JavaScript/TypeScript docs" in out
    assert "Python Documentation" in out
    assert "Python asyncio - 0.90 relevance" in out


@pytest.mark.unit
def test_render_search_without_providers(capsys):
    render_search(SearchReport(query="x"))

    assert "No documentation providers matched." in capsys.readouterr().out


# ============================================================================
# Tests for render_stats / render_limits / render_plugins
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize("detailed", [False, True])
def test_render_stats(capsys, detailed):
    stats = TokenStats(daily_usage=5_000, daily_limit=50_000, total_saved=1_200, money_saved=0.5)
    report = StatsReport(
        stats=stats,
        registry=RegistryStats(2, ("javascript", "python")),
        detailed=detailed,
        was_reset=True,
    )

    render_stats(report)

    out = capsys.readouterr().out
    assert "Usage counters reset." in out
    assert "Total saved: 1,200 tokens ($0.50)" in out
    assert "Plugins: 2 (javascript, python)" in out
    assert ("Daily limit: 10.00% used" in out) is detailed
    assert ("Use --detailed" in out) is not detailed


@pytest.mark.unit
def test_render_limits_current(capsys):
    render_limits(LimitsReport(stats=TokenStats(daily_usage=10, daily_limit=50_000)))

    out = capsys.readouterr().out
    assert "Daily: 10 / 50,000 tokens" in out


@pytest.mark.unit
def test_render_limits_updated(capsys):
    render_limits(LimitsReport(stats=TokenStats(), updated=("daily", 60_000)))

    assert "Daily limit set to 60,000 tokens" in capsys.readouterr().out


@pytest.mark.unit
def test_render_plugins(capsys, plugin_factory):
    plugin = plugin_factory(name="python", priority=75, extensions=frozenset({".py", ".pyi"}))

    render_plugins(PluginsReport(plugins=(plugin,), total_plugins=1))

    out = capsys.readouterr().out
    assert "Python (python)" in out
    assert "75" in out
    assert "Total: 1 plugins loaded" in out
