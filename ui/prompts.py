"""
Interactive prompts for the ctxforge CLI.

Used when a command needs input the user did not pass as an option: the task
description for `context` and `optimize`, the context mode, and confirmation
before usage counters are reset. Cancelling any prompt (Ctrl+C) exits the CLI.
"""

import inquirer  # type: ignore
from inquirer.themes import GreenPassion  # type: ignore
from rich import print as pr
import typer

from constants import CONTEXT_MODES


def _ask(questions: list) -> dict:
    answers = inquirer.prompt(questions, theme=GreenPassion())
    if not answers:
        raise typer.Exit()
    return answers


def prompt_task() -> str:
    """
    Ask for a task description.

    Raises:
        typer.Exit: If the prompt is cancelled or the answer is blank.
    """
    pr("\n[bold green]Describe the task you need context for.[/bold green]")
    answers = _ask(
        [
            inquirer.Text(
                "task",
                message="Task (e.g. 'fix login bug')",
            ),
        ]
    )
    task = (answers.get("task") or "").strip()
    if not task:
        pr("\n[bold red]Error:[/bold red] A task description is required.")
        raise typer.Exit(code=1)
    return task


def select_context_mode(default: str = "fast") -> str:
    answers = _ask(
        [
            inquirer.List(
                "mode",
                message="Hit [ENTER] to pick a context mode",
                choices=list(CONTEXT_MODES),
                default=default,
            ),
        ]
    )
    return answers["mode"]


def confirm_reset() -> bool:
    answers = _ask(
        [
            inquirer.Confirm(
                "reset",
                message="Reset daily and monthly usage counters?",
                default=False,
            ),
        ]
    )
    return bool(answers["reset"])
