"""
Standardized error handling and exit codes for the noot CLI.

Every command funnels failures through handle_error() so the user sees one
consistent message, with the exception's context and a hint where one
applies.
"""

import logging
from enum import IntEnum

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from noot.core.bundle import BundleError, IntegrityError, InvalidBundleError, ReplaceImportError
from noot.core.store import StoreError
from noot.core.workspace import (
    InvalidTokenError,
    NoContainerAccessError,
    NotConnectedError,
    WorkspaceError,
)

logger = logging.getLogger(__name__)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for noot CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Operation failed."""

    USER_ERROR = 2
    """Bad input or missing setup (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Not connected to a workspace",
        ...     solution="noot workspace connect <token>",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def _hint(error: Exception) -> str | None:
    if isinstance(error, NotConnectedError):
        return "noot workspace connect <token>"
    if isinstance(error, InvalidTokenError):
        return "Copy the secret from your integration's settings page"
    if isinstance(error, NoContainerAccessError):
        return "Share a database with the integration, then connect again"
    if isinstance(error, InvalidBundleError):
        return "Point at the noot-export-* directory itself"
    if isinstance(error, IntegrityError):
        return "noot import BUNDLE --mode merge  # merge tolerates dangling references"
    return None


def exit_code_for(error: Exception) -> ExitCode:
    if isinstance(error, (NotConnectedError, InvalidTokenError, NoContainerAccessError, InvalidBundleError)):
        return ExitCode.USER_ERROR
    return ExitCode.GENERAL_ERROR


def handle_error(error: Exception, debug: bool = False) -> ExitCode:
    """
    Display a failure and return the exit code the command should use.

    Known noot errors show their context; anything else is reported as
    unexpected. The traceback is printed only in debug mode.
    """
    if isinstance(error, (BundleError, StoreError, WorkspaceError)):
        text = Text()
        text.append("Error: ", style="bold red")
        text.append(str(error))

        if isinstance(error, IntegrityError):
            text.append("\n")
            for violation in error.violations:
                text.append(f"\n  • {violation}", style="white")
        elif error.context:
            text.append("\n\nContext:\n", style="dim")
            for key, value in error.context.items():
                if value is None:
                    continue
                text.append(f"  {key}: ", style="cyan")
                text.append(f"{value}\n", style="white")

        if isinstance(error, ReplaceImportError) and error.backup_path:
            text.append(f"\nYour data was backed up to {error.backup_path}", style="yellow")

        console.print(Panel(text, title="[bold red]Error[/bold red]", border_style="red", expand=False))
    else:
        console.print(
            Panel(
                Text(f"Unexpected error: {error}", style="bold red"),
                title="[bold red]Unexpected Error[/bold red]",
                border_style="red",
                expand=False,
            )
        )

    if hint := _hint(error):
        console.print(f"[cyan]→ Try:[/cyan] {hint}")

    if debug:
        console.print_exception()
    else:
        console.print("[dim]Run with --debug for full traceback[/dim]")

    return exit_code_for(error)
