"""
ctxforge CLI Entry Point.

ctxforge builds compact, task-specific context out of a local code project so
it can be handed to a language model within a tight token budget. The CLI
wraps the ContextEngine operations:

1.  **scan**: Detect the project's language plugin, parse its structure and
    dependencies, and cache a snapshot for 24 hours.
2.  **context**: Rank the cached files against a task description and compress
    the most relevant ones with an automatically selected technique.
3.  **optimize**: Squeeze the project's files under a hard token target.
4.  **docs**: Write a README and an API reference built from the snapshot.
5.  **deps**, **search**, **stats**, **limits**, **plugins**, **configure**:
    dependency reports, documentation search, token accounting and settings.

Usage:
    Run directly as a script or via the installed entry point.

    $ ctxforge scan --path /path/to/project
    $ ctxforge context --task "fix login bug" --max-tokens 800

Dependencies:
    - Typer: CLI argument parsing and app structure.
    - Rich: Terminal UI, colors, and progress visualization.
    - Inquirer: Interactive terminal user prompts.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Annotated

from rich import print as pr
import typer

from adapters.registry import create_http_client
from constants import CONTEXT_MODES, DOC_TYPES, OPTIMIZE_MODES, SCAN_LEVELS
from core.cache import CacheStore, SnapshotCache
from core.config import EngineSettings, get_config_path, load_settings, save_config
from core.engine import ContextEngine, ReportStatus
from core.exceptions import CacheError, FileIOError, OptimizationError
from core.file_io import FilesystemFileReader, FilesystemFileWriter
from core.optimizer import ContextOptimizer
from core.tokens import TokenLimits, create_token_counter
from models import SupportedLanguage
from plugins.builtin import create_default_registry
from ui import prompts, report
from ui.progress_display import RichScanProgress

app = typer.Typer(help="Context optimization for code projects.", no_args_is_help=True)

PathOption = Annotated[
    Path,
    typer.Option(
        exists=True,  # Typer throws error if path doesn't exist
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Project root. Defaults to the current working directory.",
    ),
]


def build_engine(settings: EngineSettings | None = None) -> ContextEngine:
    """
    Wire the engine with the built-in plugins and the on-disk cache.

    The engine owns the shared HTTP client; use it as a context manager so the
    client is closed when the command finishes.

    Raises:
        FileIOError: If the cache directory cannot be created.
    """
    settings = settings or load_settings()
    cache_path = settings.resolved_cache_path()
    store = CacheStore(
        FilesystemFileReader(),
        FilesystemFileWriter.from_path(cache_path, create_parents=True),
        cache_path,
    )
    cache = SnapshotCache(
        store, limits=TokenLimits(settings.daily_limit, settings.monthly_limit)
    )
    counter = create_token_counter(settings.token_counter, settings.tiktoken_model)
    client = create_http_client(settings.registry_timeout)
    return ContextEngine(
        registry=create_default_registry(settings, client=client),
        cache=cache,
        optimizer=ContextOptimizer(counter=counter),
        settings=settings,
        closers=[client.close],
    )


def normalize_language(language: str | None) -> SupportedLanguage | None:
    """
    Case-insensitively match a language name against SupportedLanguage.

    Returns None when no language is given.

    Raises:
        typer.BadParameter: If the language is not supported.
    """
    if not language:
        return None

    normalized = language.strip().lower()
    for lang in SupportedLanguage:
        if str(lang).lower() == normalized:
            return lang
    raise typer.BadParameter(
        f"Unsupported language: {language}. Available: {', '.join(SupportedLanguage)}"
    )


def _check_choice(value: str, choices, name: str) -> str:
    if value not in choices:
        raise typer.BadParameter(f"Unknown {name} '{value}'. Choose from: {', '.join(choices)}")
    return value


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn engine failures into friendly messages and exit code 1."""
    try:
        yield
    except typer.Exit:
        raise
    except FileIOError as e:
        print_file_io_err(e)
    except CacheError as e:
        print_cache_err(e)
    except OptimizationError as e:
        print_optimization_err(e)
    except Exception as e:  # noqa: BLE001
        # Catch-all for any unexpected errors - ensures users always see
        # a friendly message instead of a raw Python stack trace
        print_unexpected_err(e)


@app.command()
def scan(
    path: PathOption = Path.cwd(),
    level: Annotated[
        str, typer.Option(help=f"Scan level: {', '.join(SCAN_LEVELS)}")
    ] = "extreme",
    force_refresh: Annotated[
        bool, typer.Option("--force-refresh", "-f", help="Ignore a valid cached snapshot.")
    ] = False,
):
    """Analyze a project and cache its snapshot."""
    _check_choice(level, SCAN_LEVELS, "level")
    with handle_errors(), build_engine() as engine:
        result = engine.scan(
            path, level=level, force_refresh=force_refresh, progress=RichScanProgress()
        )
        report.render_scan(result)
        if result.status != ReportStatus.OK:
            raise typer.Exit(code=1)


@app.command()
def context(
    path: PathOption = Path.cwd(),
    task: Annotated[
        str | None, typer.Option("--task", "-t", help="What you are working on.")
    ] = None,
    max_tokens: Annotated[int, typer.Option(min=1, help="Token budget.")] = 800,
    mode: Annotated[
        str | None, typer.Option(help=f"Context mode: {', '.join(CONTEXT_MODES)}")
    ] = None,
    scores: Annotated[
        bool, typer.Option("--scores", help="Show the relevance table.")
    ] = False,
):
    """
    Build task-specific context for a scanned project.

    When --task is omitted the task is asked for interactively, followed by the
    mode unless --mode was given.
    """
    if task is None:
        task = prompts.prompt_task()
        if mode is None:
            mode = prompts.select_context_mode()
    mode = _check_choice(mode or "fast", CONTEXT_MODES, "mode")

    with handle_errors(), build_engine() as engine:
        result = engine.get_context(path, task, max_tokens=max_tokens, mode=mode)
        report.render_context(result, show_scores=scores)
        if result.status != ReportStatus.OK:
            raise typer.Exit(code=1)


@app.command()
def optimize(
    path: PathOption = Path.cwd(),
    task: Annotated[
        str | None, typer.Option("--task", "-t", help="What you are working on.")
    ] = None,
    target_tokens: Annotated[int, typer.Option(min=1, help="Hard token target.")] = 300,
    mode: Annotated[
        str, typer.Option(help=f"Optimize mode: {', '.join(OPTIMIZE_MODES)}")
    ] = "speed",
):
    """Compress a scanned project under a token target."""
    _check_choice(mode, OPTIMIZE_MODES, "mode")
    if task is None:
        task = prompts.prompt_task()

    with handle_errors(), build_engine() as engine:
        result = engine.optimize(path, task, target_tokens=target_tokens, mode=mode)
        report.render_optimize(result)
        if result.status != ReportStatus.OK:
            raise typer.Exit(code=1)


@app.command()
def docs(
    path: PathOption = Path.cwd(),
    doc_type: Annotated[
        str, typer.Option("--type", help=f"Documents to write: {', '.join(DOC_TYPES)}")
    ] = "readme",
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite existing files.")
    ] = False,
):
    """Write a README and/or API reference for a scanned project."""
    _check_choice(doc_type, DOC_TYPES, "documentation type")
    with handle_errors(), build_engine() as engine:
        result = engine.generate_docs(path, doc_type=doc_type, overwrite=force)
        report.render_docs(result)
        if result.status != ReportStatus.OK or result.failed:
            raise typer.Exit(code=1)


@app.command()
def deps(
    path: PathOption = Path.cwd(),
    check_updates: Annotated[
        bool,
        typer.Option(
            "--check-updates/--no-check-updates",
            help="Query package registries for newer releases.",
        ),
    ] = True,
):
    """Report the dependencies of a scanned project."""
    with handle_errors(), build_engine() as engine:
        result = engine.analyze_dependencies(path, check_updates=check_updates)
        report.render_dependencies(result)
        if result.status != ReportStatus.OK:
            raise typer.Exit(code=1)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search terms.")],
    framework: Annotated[str | None, typer.Option(help="Framework to boost.")] = None,
    language: Annotated[
        str | None,
        typer.Option(help=f"Available languages: {', '.join(SupportedLanguage)}"),
    ] = None,
):
    """Search language and framework documentation."""
    lang = normalize_language(language)
    with handle_errors(), build_engine() as engine:
        report.render_search(engine.search_docs(query, framework=framework, language=lang))


@app.command()
def stats(
    detailed: Annotated[bool, typer.Option("--detailed", "-d")] = False,
    reset: Annotated[bool, typer.Option("--reset", help="Zero the usage counters.")] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
):
    """Show token usage statistics."""
    if reset and not yes and not prompts.confirm_reset():
        reset = False

    with handle_errors(), build_engine() as engine:
        report.render_stats(engine.stats(detailed=detailed, reset=reset))


@app.command()
def limits(
    set_limit: Annotated[
        str | None,
        typer.Option("--set", help="New limit, e.g. daily:50000 or monthly:1000000."),
    ] = None,
):
    """Show or change token usage limits."""
    with handle_errors(), build_engine() as engine:
        try:
            result = engine.limits(set_limit)
        except ValueError as e:
            pr(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e
        report.render_limits(result)


@app.command()
def plugins(
    language: Annotated[
        str | None,
        typer.Option(help=f"Available languages: {', '.join(SupportedLanguage)}"),
    ] = None,
):
    """List the registered language plugins."""
    lang = normalize_language(language)
    with handle_errors(), build_engine() as engine:
        report.render_plugins(engine.list_plugins(lang))


@app.command()
def configure(
    token_counter: Annotated[
        str | None, typer.Option(help="Token counter: ratio or tiktoken.")
    ] = None,
    tiktoken_model: Annotated[str | None, typer.Option()] = None,
    cache_path: Annotated[str | None, typer.Option()] = None,
    max_file_chars: Annotated[int | None, typer.Option(min=1)] = None,
    registry_timeout: Annotated[float | None, typer.Option(min=0.1)] = None,
):
    """Show settings, or update the ones passed as options."""
    settings = load_settings()
    changes = {
        k: v
        for k, v in {
            "token_counter": token_counter,
            "tiktoken_model": tiktoken_model,
            "cache_path": cache_path,
            "max_file_chars": max_file_chars,
            "registry_timeout": registry_timeout,
        }.items()
        if v is not None
    }
    if "token_counter" in changes:
        _check_choice(changes["token_counter"], ("ratio", "tiktoken"), "token counter")

    if changes:
        settings = replace(settings, **changes)
        try:
            save_config(settings)
        except FileIOError as e:
            print_file_io_err(e)
        pr("[green]Config saved.[/green]\n")

    pr(f"[bold]Settings[/bold] ({get_config_path()})")
    for name, value in vars(settings).items():
        pr(f"  {name}: {value}")


def print_file_io_err(e: FileIOError) -> None:
    """
    Displays a user-friendly error message for file I/O operation failures.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    pr("❌ [bold red]File I/O Error[/bold red]")
    pr(f"ctxforge could not work with a file: {e.message}")
    if e.file_path:
        pr(f"File path: [yellow]{e.file_path}[/yellow]")

    pr("\n[yellow]Quick Fix:[/yellow] Check file permissions and available disk space.")
    if e.original_exception:
        pr(f"\nTechnical details: {e.original_exception}")

    raise typer.Exit(code=1) from e


def print_cache_err(e: CacheError) -> None:
    """
    Displays a user-friendly error message for cache persistence failures.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    pr("❌ [bold red]Cache Error[/bold red]")
    pr(f"The project cache could not be used: {e.message}")
    pr(
        "\n[yellow]Quick Fix:[/yellow] Delete the cache file and run "
        "[bold]ctxforge scan[/bold] again."
    )
    if e.original_exception:
        pr(f"\nTechnical details: {e.original_exception}")

    raise typer.Exit(code=1) from e


def print_optimization_err(e: OptimizationError) -> None:
    """
    Displays a user-friendly error message when a compression technique fails.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    pr("❌ [bold red]Optimization Error[/bold red]")
    pr(f"Technique [magenta]{e.technique}[/magenta] failed: {e.message}")

    pr("\n--- PLEASE REPORT THIS ---")
    if e.original_exception:
        pr(f"Caused by: {type(e.original_exception).__name__}: {e.original_exception}")

    raise typer.Exit(code=1) from e


def print_unexpected_err(e: Exception) -> None:
    """
    Displays a user-friendly error message for unexpected errors.

    Raises:
        typer.Exit: Always raises with exit code 1 to terminate the application.
    """
    pr("❌ [bold red]Unexpected Error[/bold red]")
    pr("An unexpected error occurred while processing your request.")
    pr(f"\n[yellow]Error Type:[/yellow] {type(e).__name__}")
    pr(f"[yellow]Error Message:[/yellow] {str(e)}")

    pr("\n[yellow]What to do:[/yellow]")
    pr("1. Check that the project path is valid and readable")
    pr("2. Run [bold]ctxforge scan --force-refresh[/bold] to rebuild the snapshot")
    pr("3. If the problem persists, please report this issue")

    if e.__cause__:
        pr(f"\nCaused by: {e.__cause__}")

    raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
