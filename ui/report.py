"""
Terminal rendering of engine reports.

Each `render_*` function prints one report with Rich markup, tables and panels.
Reports whose status is not OK print their message in red and nothing else.
"""

from rich import print as pr
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from constants import COST_PER_TOKEN
from core.engine import (
    ContextReport,
    DependencyReport,
    DocsReport,
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
from core.models import OptimizationResult, RelevanceScore
from core.tokens import TokenStats

# Dependencies listed before the rest are summarized as a count.
LISTED_DEPENDENCIES = 5
# Documentation hits shown per plugin.
LISTED_DOC_RESULTS = 2


def format_usage(usage: UsageReport) -> str:
    s = usage.savings
    return (
        f"[green]Saved: {s.saved_tokens:,} tokens ({s.savings_percentage:.1f}%)[/green]"
        f" | Cost: ${s.cost_savings:.3f}"
        f" | Remaining: {usage.daily_remaining:,} tokens today"
    )


def format_summary(summary: ProjectSummary) -> str:
    return "\n".join(
        [
            f"Project: [bold]{summary.name}[/bold]",
            f"Type: {summary.project_type}",
            f"Language: {summary.language}",
            f"Framework: {summary.framework or 'None'}",
            f"Files: {summary.file_count}",
            f"Targets: {summary.target_count}",
            f"Dependencies: {summary.dependency_count}",
            f"Plugin: {summary.plugin_name}",
            f"Updated: {summary.updated_at.date().isoformat()}",
        ]
    )


def _print_usage(usage: UsageReport | None) -> None:
    if usage is not None:
        pr(f"\n{format_usage(usage)}")


def _print_failure(message: str) -> None:
    pr(f"[bold red]Error:[/bold red] {escape(message)}")


def _files_tree(label: str, paths: tuple[str, ...]) -> Tree:
    tree = Tree(f"[bold]{label}[/bold]")
    for path in paths:
        tree.add(escape(path))
    return tree


def render_scan(report: ScanReport) -> None:
    if report.status == ReportStatus.NO_PLUGIN:
        _print_failure(report.message)
        if report.supported_plugins:
            pr(f"\nSupported languages: {', '.join(report.supported_plugins)}")
        return

    if report.from_cache:
        title = f"Project loaded from cache ({report.level})"
    else:
        title = f"Project analyzed with {report.plugin_display_name} plugin ({report.level})"
    summary = report.summary
    pr(Panel(format_summary(summary), title=title, border_style="green", expand=False))
    if summary.top_files:
        pr(_files_tree("Files", summary.top_files))
    _print_usage(report.usage)


def _relevance_table(scores: tuple[RelevanceScore, ...]) -> Table:
    table = Table(title="Relevant files", show_lines=False)
    table.add_column("File", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Kind")
    table.add_column("Why")
    for score in scores:
        reasons = ", ".join(r.factor for r in score.reasons)
        table.add_row(
            escape(score.file_path), f"{score.score:.2f}", str(score.metadata.kind), reasons
        )
    return table


def _print_result(result: OptimizationResult) -> None:
    pr(f"Technique: [magenta]{result.technique}[/magenta]")
    pr(
        f"Confidence: {result.confidence:.2f} | Quality: {result.quality_score:.2f}"
        f" | Time: {result.time_taken_ms:.1f} ms"
    )
    pr(Panel(escape(result.content) or "[dim](empty)[/dim]", expand=False))


def render_context(report: ContextReport, show_scores: bool = False) -> None:
    if report.status != ReportStatus.OK:
        _print_failure(report.message)
        return

    pr(f'[bold]Context for:[/bold] "{escape(report.task)}"\n')
    pr(f"Mode: {report.mode}")
    pr(f"Language: {report.language}")
    pr(f"Relevant files: {len(report.relevant_files)}")
    if show_scores and report.relevant_files:
        pr(_relevance_table(report.relevant_files))
    _print_result(report.result)
    _print_usage(report.usage)


def render_optimize(report: OptimizeReport) -> None:
    if report.status != ReportStatus.OK:
        _print_failure(report.message)
        return

    result = report.result
    marker = "[green]OK[/green]" if report.target_achieved else "[yellow]OVER[/yellow]"
    pr("[bold]Optimization complete[/bold]\n")
    pr(f"Target: {result.estimated_tokens}/{report.target_tokens} tokens {marker}")
    pr(f"Mode: {report.mode}")
    pr(f"Language: {report.language}")
    _print_result(result)
    _print_usage(report.usage)


def render_dependencies(report: DependencyReport) -> None:
    if report.status != ReportStatus.OK:
        _print_failure(report.message)
        return

    graph = report.graph
    outdated = {o.name: o for o in graph.outdated}
    pr(f"[bold]Dependencies ({report.language})[/bold]\n")

    table = Table()
    table.add_column("Package", style="cyan")
    table.add_column("Version")
    table.add_column("Scope")
    table.add_column("Latest")
    for dep in graph.dependencies[:LISTED_DEPENDENCIES]:
        newer = outdated.get(dep.name)
        latest = f"[yellow]{newer.latest_version}[/yellow]" if newer else ""
        table.add_row(dep.name, dep.version, dep.scope, latest)
    pr(table)

    hidden = len(graph.dependencies) - LISTED_DEPENDENCIES
    if hidden > 0:
        pr(f"... and {hidden} more")
    if graph.dev_dependencies or graph.optional_dependencies:
        pr(
            f"Development: {len(graph.dev_dependencies)}"
            f" | Optional: {len(graph.optional_dependencies)}"
        )
    if report.checked_updates:
        pr(f"Updates available: {len(graph.outdated)}")
        if graph.total_size:
            pr(f"Total size: {graph.total_size:,} bytes")
    if graph.conflicts:
        pr(f"\n[yellow]{len(graph.conflicts)} dependency conflicts detected[/yellow]")
        for conflict in graph.conflicts:
            pr(
                f"  {conflict.package}: {', '.join(conflict.versions)}"
                f" ({conflict.resolution or conflict.cause})"
            )
    _print_usage(report.usage)


def render_docs(report: DocsReport) -> None:
    if report.status != ReportStatus.OK:
        _print_failure(report.message)
        return

    pr(f"[bold]Documentation generated for {report.language} project[/bold]\n")
    for name in report.written:
        pr(f"[green]Wrote[/green] {name}")
    for name in report.skipped:
        pr(f"[yellow]Skipped[/yellow] {name} (already exists, use --force to overwrite)")
    for name, message in report.failed:
        pr(f"[red]Could not write[/red] {name}: {escape(message)}")
    _print_usage(report.usage)


def render_search(report: SearchReport) -> None:
    pr(f'[bold]Search:[/bold] "{escape(report.query)}"\n')
    if not report.sections:
        pr("[dim]No documentation providers matched.[/dim]")
    for section in report.sections:
        if section.error is not None:
            pr(f"[red]Failed to search {section.plugin_display_name} docs[/red]\n")
            continue
        pr(f"[bold]{section.plugin_display_name} Documentation[/bold]")
        if not section.results:
            pr("  [dim]No results[/dim]")
        for doc in section.results[:LISTED_DOC_RESULTS]:
            pr(f"  {escape(doc.title)} - {doc.relevance:.2f} relevance")
            pr(f"  [link={doc.url}]{doc.url}[/link]")
        pr("")


def _percent(used: int, limit: int) -> float:
    return used / limit * 100 if limit else 0.0


def _usage_table(stats: TokenStats) -> Table:
    table = Table(show_header=True)
    table.add_column("Period")
    table.add_column("Used", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_row(
        "Daily",
        f"{stats.daily_usage:,}",
        f"{stats.daily_limit:,}",
        f"{stats.daily_remaining:,} ({_percent(stats.daily_remaining, stats.daily_limit):.1f}%)",
    )
    table.add_row(
        "Monthly",
        f"{stats.monthly_usage:,}",
        f"{stats.monthly_limit:,}",
        f"{stats.monthly_remaining:,}"
        f" ({_percent(stats.monthly_remaining, stats.monthly_limit):.1f}%)",
    )
    return table


def render_stats(report: StatsReport) -> None:
    stats = report.stats
    if report.was_reset:
        pr("[green]Usage counters reset.[/green]\n")

    pr(Panel.fit("[bold]ctxforge statistics[/bold]", border_style="magenta"))
    pr(_usage_table(stats))
    pr(f"Total saved: {stats.total_saved:,} tokens (${stats.money_saved:.2f})")
    pr(
        f"Plugins: {report.registry.total_plugins}"
        f" ({', '.join(report.registry.plugin_names) or 'none'})"
    )

    if not report.detailed:
        pr("\n[dim]Use --detailed for the full report.[/dim]")
        return

    pr("\n[bold]Usage limits[/bold]")
    pr(f"  Daily limit: {_percent(stats.daily_usage, stats.daily_limit):.2f}% used")
    pr(f"  Monthly limit: {_percent(stats.monthly_usage, stats.monthly_limit):.2f}% used")
    pr("\n[bold]Costs[/bold]")
    pr(f"  Daily cost: ${stats.daily_usage * COST_PER_TOKEN:.4f}")
    pr(f"  Monthly cost: ${stats.monthly_usage * COST_PER_TOKEN:.2f}")
    pr(f"  Total savings: ${stats.money_saved:.2f}")
    if stats.last_recorded is not None:
        pr(f"\nLast recorded: {stats.last_recorded.isoformat(timespec='seconds')}")


def render_limits(report: LimitsReport) -> None:
    if report.updated is not None:
        kind, value = report.updated
        pr(f"[green]{kind.capitalize()} limit set to {value:,} tokens[/green]")
        return

    stats = report.stats
    pr("[bold]Current limits[/bold]")
    pr(f"  Daily: {stats.daily_usage:,} / {stats.daily_limit:,} tokens")
    pr(f"  Monthly: {stats.monthly_usage:,} / {stats.monthly_limit:,} tokens")
    pr("\n[dim]To change: ctxforge limits --set daily:50000[/dim]")


def render_plugins(report: PluginsReport) -> None:
    pr("[bold]Available language plugins[/bold]\n")
    table = Table()
    table.add_column("Plugin", style="cyan")
    table.add_column("Languages")
    table.add_column("Extensions")
    table.add_column("Priority", justify="right")
    for plugin in report.plugins:
        table.add_row(
            f"{plugin.display_name} ({plugin.name})",
            ", ".join(plugin.metadata.supported_languages),
            ", ".join(sorted(plugin.file_extensions)),
            str(plugin.get_priority()),
        )
    pr(table)
    pr(f"Total: {report.total_plugins} plugins loaded")
