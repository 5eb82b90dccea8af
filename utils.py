"""
General utility functions shared by the engine and the CLI.
"""

from datetime import datetime, timezone
import os

from rich.console import Console

# Diagnostics go to stderr so command output on stdout stays clean.
console: Console = Console(stderr=True)


def debug_enabled() -> bool:
    """Return True when CTXFORGE_DEBUG is set to a truthy value."""
    return os.environ.get("CTXFORGE_DEBUG", "").lower() in {"1", "true", "yes"}


def debug(
    *values: object,
    sep: str = " ",
    end: str = "\n",
) -> None:
    """
    Print debug message with orange formatting.

    Messages are only emitted when the CTXFORGE_DEBUG environment variable is
    enabled, so debug calls can stay in hot paths such as file scanning.

    Args:
        *values: Variable number of objects to print. All values are converted to strings.
        sep: Separator string between values. Defaults to a single space.
        end: String appended after the last value. Defaults to newline.
    """
    if not debug_enabled():
        return

    message = sep.join(str(v) for v in values)
    console.print(f"DEBUG: {message}", end=end, style="orange1", markup=False)


def warn(message: str) -> None:
    """
    Print a non-fatal warning.

    Used wherever a failure is absorbed instead of propagated (unreadable files,
    failed plugin detection, cache persistence problems), so the user still sees
    what was skipped.

    Args:
        message: Plain text describing what went wrong. Rich markup in the
            message is not interpreted.
    """
    console.print("[yellow]⚠ Warning:[/yellow] ", end="")
    console.print(message, markup=False, highlight=False)


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
