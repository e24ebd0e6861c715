"""
Noot CLI - Workspace sync commands.

Connect a remote workspace, push notes to it and inspect sync state.
"""

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from noot.cli.errors import ExitCode, handle_error
from noot.cli.runtime import is_debug, load_runtime
from noot.core.workspace import SyncAction, SyncProgress, SyncReport, WorkspaceSyncService

console = Console()
app = typer.Typer(
    name="workspace",
    help="Sync notes to a remote workspace",
    no_args_is_help=True,
)


def _get_service() -> WorkspaceSyncService:
    config, store = load_runtime()
    return WorkspaceSyncService(store, config.workspace)


def _print_sync_report(report: SyncReport) -> None:
    table = Table(title="Sync Statistics", show_header=False, box=None)
    table.add_column("Metric", style="cyan", no_wrap=True, width=20)
    table.add_column("Count", justify="right", style="bold")
    table.add_row("Pages created", Text(str(report.notes_created), style="green"))
    table.add_row("Pages updated", Text(str(report.notes_updated), style="blue"))
    table.add_row("Failed", Text(str(report.notes_failed), style="red" if report.notes_failed else "dim"))
    console.print(table)

    if report.errors:
        content = Text()
        for i, error in enumerate(report.errors):
            if i > 0:
                content.append("\n")
            content.append(f"• {error}")
        console.print(
            Panel(content, title="[bold yellow]Errors[/bold yellow]", border_style="yellow", expand=False)
        )


async def _sweep(service: WorkspaceSyncService) -> SyncReport:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Preparing", total=None)

        def update(p: SyncProgress) -> None:
            label = f"{p.phase}: {p.current_note}" if p.current_note else p.phase
            progress.update(task_id, description=label, completed=p.current, total=p.total or None)

        return await service.sync_all(update)


@app.command()
def connect(
    ctx: typer.Context,
    token: Annotated[str, typer.Argument(help="Internal integration secret (secret_... or ntn_...)")],
) -> None:
    """
    Connect with an integration token.

    Picks the shared database whose title mentions "noot" (else the first
    one) and adds the properties sync needs.

    Examples:
        noot workspace connect ntn_abc123...
    """
    try:
        connection = asyncio.run(_get_service().connect(token))
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))

    console.print(
        f"[green]✓[/green] Connected to {connection.workspace_name or 'workspace'}, "
        f"database [bold]{connection.container_name}[/bold]"
    )


@app.command()
def disconnect(ctx: typer.Context) -> None:
    """Forget the connection and its sync history."""
    try:
        service = _get_service()
        if not service.is_connected:
            console.print("[blue]Not connected[/blue]")
            return
        service.disconnect()
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))
    console.print("[green]✓[/green] Disconnected")


@app.command()
def sync(
    ctx: typer.Context,
    note_id: Annotated[
        str | None,
        typer.Option("--note", "-n", help="Push a single note now, even if unchanged"),
    ] = None,
) -> None:
    """
    Push new and changed notes.

    Examples:
        noot workspace sync
        noot workspace sync --note 6F1C...
    """
    try:
        service = _get_service()
        if note_id:
            action = asyncio.run(service.sync_note(note_id))
            verb = "Created" if action == SyncAction.CREATED else "Updated"
            url = service.page_url(note_id)
            console.print(f"[green]✓[/green] {verb} page{f': {url}' if url else ''}")
            return

        report = asyncio.run(_sweep(service))
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))

    _print_sync_report(report)
    if report.notes_failed and not (report.notes_created or report.notes_updated):
        raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def resync(ctx: typer.Context) -> None:
    """Forget which notes were pushed, then push every note again."""
    try:
        service = _get_service()
        cleared = service.clear_sync_states()
        console.print(f"[blue]Cleared {cleared} sync records[/blue]")
        report = asyncio.run(_sweep(service))
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))

    _print_sync_report(report)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the current connection."""
    try:
        service = _get_service()
        connection = service.get_connection()
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))

    if connection is None:
        console.print("[yellow]Not connected[/yellow]")
        console.print("[cyan]→ Try:[/cyan] noot workspace connect <token>")
        return

    table = Table(title="Workspace", show_header=False, box=None)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_row("Workspace", connection.workspace_name or connection.workspace_id)
    table.add_row("Database", f"{connection.container_name} ({connection.container_id})")
    table.add_row("Connected", connection.connected_at.strftime("%Y-%m-%d %H:%M"))
    table.add_row(
        "Last sync",
        connection.last_sync_at.strftime("%Y-%m-%d %H:%M") if connection.last_sync_at else "never",
    )
    table.add_row("Archived notes", "included" if connection.sync_archived_notes else "excluded")
    console.print(table)


@app.command()
def settings(
    ctx: typer.Context,
    sync_archived: Annotated[
        bool,
        typer.Option("--sync-archived/--skip-archived", help="Include archived notes in sweeps"),
    ],
) -> None:
    """Change which notes a sweep includes."""
    try:
        connection = _get_service().update_settings(sync_archived)
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))
    state = "included" if connection.sync_archived_notes else "excluded"
    console.print(f"[green]✓[/green] Archived notes {state}")
