"""
Noot CLI - Import commands.

`import` loads a bundle written by `noot export`; `import-markdown` turns a
loose folder of .md files into new notes.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from noot.cli.errors import ExitCode, handle_error, print_error
from noot.cli.runtime import is_debug, load_runtime, progress_bar
from noot.core.bundle import (
    BundleImporter,
    ImportMode,
    ImportPreview,
    ImportReport,
    MarkdownImporter,
    MarkdownImportOptions,
)

console = Console()


def _print_preview(preview: ImportPreview) -> None:
    table = Table(title="Bundle Preview", show_header=False, box=None)
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="bold")
    table.add_row("Valid", "[green]yes[/green]" if preview.is_valid else "[red]no[/red]")
    table.add_row("Schema version", str(preview.schema_version))
    table.add_row("Notes", str(preview.note_count))
    table.add_row("Contexts", str(preview.context_count))
    table.add_row("Meetings", str(preview.meeting_count))
    table.add_row("Attachments", str(preview.attachment_count))
    console.print(table)

    if preview.migration_description:
        console.print(f"[blue]{preview.migration_description}[/blue]")
    _print_warnings(preview.warnings)


def _print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    content = Text()
    for i, warning in enumerate(warnings):
        if i > 0:
            content.append("\n")
        content.append(f"• {warning}")
    console.print(
        Panel(content, title="[bold yellow]Warnings[/bold yellow]", border_style="yellow", expand=False)
    )


def _print_report(report: ImportReport) -> None:
    table = Table(title="Import Summary", show_header=False, box=None)
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="bold")
    table.add_row("Notes imported", Text(str(report.notes_imported), style="green"))
    table.add_row("Contexts imported", Text(str(report.contexts_imported), style="green"))
    table.add_row("Meetings imported", Text(str(report.meetings_imported), style="green"))
    table.add_row("Attachments imported", Text(str(report.attachments_imported), style="green"))
    table.add_row("Skipped", Text(str(len(report.skipped)), style="yellow"))
    console.print(table)

    if report.skipped:
        skipped = Table(title="Skipped")
        skipped.add_column("Type", style="cyan")
        skipped.add_column("Name")
        skipped.add_column("Reason", style="dim")
        for item in report.skipped:
            skipped.add_row(item.type, item.name, item.reason)
        console.print(skipped)

    if report.backup_path:
        console.print(f"[dim]Previous data backed up to {report.backup_path}[/dim]")
    _print_warnings(report.warnings)


def import_bundle(
    ctx: typer.Context,
    bundle: Annotated[Path, typer.Argument(help="Bundle directory (noot-export-*)")],
    mode: Annotated[
        ImportMode,
        typer.Option("--mode", help="merge: add what is missing; replace: back up, wipe, reload"),
    ] = ImportMode.MERGE,
    preview: Annotated[
        bool,
        typer.Option("--preview", help="Inspect the bundle without importing"),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask before a replace import"),
    ] = False,
) -> None:
    """
    Import a bundle.

    Merge adds entities whose id is not already present and reports the
    rest as skipped. Replace first backs up the current data, then swaps
    everything for the bundle's contents in one transaction.

    Examples:
        noot import ~/Backups/noot-export-2024-05-01_09-30-00
        noot import BUNDLE --preview
        noot import BUNDLE --mode replace --yes
    """
    try:
        config, store = load_runtime()
        importer = BundleImporter(store, config.paths)

        if preview:
            result = importer.validate_bundle(bundle)
            if not result.is_valid:
                print_error(
                    f"{bundle} is not a noot bundle",
                    reason=result.warnings[0] if result.warnings else None,
                    solution="Point at the noot-export-* directory itself",
                )
                raise typer.Exit(ExitCode.USER_ERROR)
            _print_preview(result)
            return

        if mode == ImportMode.REPLACE and not yes:
            typer.confirm("Replace ALL current data with this bundle? A backup is made first.", abort=True)

        with progress_bar("Importing") as update:
            report = importer.import_bundle(
                bundle, mode, lambda p: update(p.phase, p.current, p.total)
            )

        console.print(f"[green]✓[/green] Import complete ({mode.value})")
        _print_report(report)

    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))


def import_markdown(
    ctx: typer.Context,
    folder: Annotated[Path, typer.Argument(help="Folder of .md files", exists=True, file_okay=False)],
    no_folders: Annotated[
        bool,
        typer.Option("--no-folders", help="Do not turn top-level folders into contexts"),
    ] = False,
    no_frontmatter: Annotated[
        bool,
        typer.Option("--no-frontmatter", help="Keep frontmatter as part of the note body"),
    ] = False,
    no_images: Annotated[
        bool,
        typer.Option("--no-images", help="Do not copy referenced local images"),
    ] = False,
    context_id: Annotated[
        str | None,
        typer.Option("--context", help="Assign notes outside any folder to this context id"),
    ] = None,
) -> None:
    """
    Import a folder of markdown files as new notes.

    Examples:
        noot import-markdown ~/Obsidian/Work
        noot import-markdown ./notes --no-folders --context 6F1C...
    """
    try:
        config, store = load_runtime()
        options = MarkdownImportOptions(
            create_contexts_from_folders=not no_folders,
            parse_frontmatter=not no_frontmatter,
            import_images=not no_images,
            target_context=context_id,
        )

        with progress_bar("Importing markdown") as update:
            report = MarkdownImporter(store, config.paths).import_markdown(
                folder, options, lambda p: update(p.phase, p.current, p.total)
            )

        console.print("[green]✓[/green] Markdown import complete")
        _print_report(report)

    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))
