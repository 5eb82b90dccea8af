"""
Progress reporting for long-running scans.

The engine reports scan stages through the ScanProgress protocol, so it never
depends on Rich directly. The CLI passes a RichScanProgress; tests and
library callers use NoOpScanProgress.
"""

from enum import StrEnum
from types import TracebackType
from typing import Optional, Protocol

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)

from utils import console


class ProgressState(StrEnum):
    """Rich color used for a task description in each state."""

    IN_PROGRESS = "magenta"
    COMPLETE = "green"
    WARNING = "yellow"
    ERROR = "red"


def create_progress() -> Progress:
    """Create a Rich Progress with the standard spinner, text, bar and percentage columns."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=False,
    )


def styled(description: str, state: ProgressState) -> str:
    return f"[{state}]{description}"


class ScanProgress(Protocol):
    """
    Receives scan progress.

    Lifecycle: enter the context, call on_start once, on_update any number of
    times, on_complete once, then exit the context.
    """

    def __enter__(self) -> "ScanProgress": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    def on_start(self, description: str, total: int | None) -> None: ...

    def on_update(
        self, *, advance: int | None = None, description: str | None = None
    ) -> None: ...

    def on_complete(
        self, description: str, completed: int, total: int | None = None
    ) -> None: ...


class RichScanProgress:
    """
    ScanProgress rendered as a Rich progress bar on stderr.

    Must be used as a context manager; the Progress instance is created on entry.
    """

    def __init__(self) -> None:
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def __enter__(self) -> "RichScanProgress":
        self._progress = create_progress()
        self._progress.__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._progress:
            self._progress.__exit__(exc_type, exc_val, exc_tb)

    def _require_progress(self) -> Progress:
        if not self._progress:
            raise RuntimeError(
                "RichScanProgress must be used as a context manager. "
                "Use: with RichScanProgress() as progress:"
            )
        return self._progress

    def on_start(self, description: str, total: int | None) -> None:
        """
        Raises:
            RuntimeError: If not used as a context manager.
        """
        progress = self._require_progress()
        self._task = progress.add_task(
            styled(description, ProgressState.IN_PROGRESS), total=total
        )

    def on_update(
        self, *, advance: int | None = None, description: str | None = None
    ) -> None:
        """
        Advance the counter, restyle the description, or both.

        Raises:
            RuntimeError: If not inside the context or on_start() was not called.
            ValueError: If neither advance nor description is provided.
        """
        progress = self._require_progress()
        if self._task is None:
            raise RuntimeError("on_start() must be called before on_update()")
        if not (advance or description):
            raise ValueError(
                "At least one of 'advance' or 'description' must be provided to on_update()"
            )

        if description:
            progress.update(
                self._task,
                advance=advance,
                description=styled(description, ProgressState.IN_PROGRESS),
            )
        else:
            # Rich treats description=None as "clear", so it is omitted
            progress.update(self._task, advance=advance)

    def on_complete(
        self, description: str, completed: int, total: Optional[int] = None
    ) -> None:
        """
        Raises:
            RuntimeError: If not inside the context or on_start() was not called.
        """
        progress = self._require_progress()
        if self._task is None:
            raise RuntimeError("on_start() must be called before on_complete()")
        progress.update(
            self._task,
            total=total if total is not None else completed,
            completed=completed,
            description=styled(description, ProgressState.COMPLETE),
        )


class NoOpScanProgress:
    """ScanProgress that discards every event."""

    def __enter__(self) -> "NoOpScanProgress":
        return self

    def __exit__(self, *args) -> None:
        pass

    def on_start(self, description: str, total: int | None) -> None:
        pass

    def on_update(
        self, *, advance: int | None = None, description: str | None = None
    ) -> None:
        pass

    def on_complete(
        self, description: str, completed: int, total: int | None = None
    ) -> None:
        pass
