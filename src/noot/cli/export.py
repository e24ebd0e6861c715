"""
Noot CLI - Export command.

Writes a full bundle (for backup and transfer) or a readable markdown tree.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from noot.cli.errors import handle_error
from noot.cli.runtime import is_debug, load_runtime, progress_bar
from noot.core.bundle import BundleExporter, ExportProgress, MarkdownExportOptions, OrganizeBy
from noot.core.bundle.models import MANIFEST_FILENAME

console = Console()


def _print_manifest_summary(bundle_dir: Path) -> None:
    manifest = json.loads((bundle_dir / MANIFEST_FILENAME).read_text(encoding="utf-8"))

    table = Table(title="Export Summary", show_header=False, box=None)
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="bold")
    for label, key in (
        ("Notes", "noteCount"),
        ("Contexts", "contextCount"),
        ("Meetings", "meetingCount"),
        ("Attachments", "attachmentCount"),
        ("Note links", "noteLinkCount"),
        ("Calendar events", "calendarEventCount"),
    ):
        table.add_row(label, str(manifest.get(key, 0)))
    console.print(table)


def export(
    ctx: typer.Context,
    destination: Annotated[
        Path | None,
        typer.Argument(help="Parent directory for the export (default: backups directory)"),
    ] = None,
    markdown: Annotated[
        bool,
        typer.Option("--markdown", "-m", help="Write readable markdown instead of a bundle"),
    ] = False,
    organize_by: Annotated[
        OrganizeBy | None,
        typer.Option("--organize-by", help="Markdown folder layout"),
    ] = None,
    include_archived: Annotated[
        bool | None,
        typer.Option("--include-archived/--skip-archived", help="Include archived notes in markdown"),
    ] = None,
    context_id: Annotated[
        str | None,
        typer.Option("--context", help="Markdown export of a single context by id"),
    ] = None,
) -> None:
    """
    Export notes.

    By default writes a complete bundle (noot-export-<timestamp>/) that
    can be imported again with `noot import`. With --markdown, writes a
    human-readable tree of .md files instead.

    Examples:
        noot export                         # Bundle into the backups directory
        noot export ~/Desktop               # Bundle into ~/Desktop
        noot export --markdown --organize-by date
        noot export --markdown --context 6F1C...
    """
    try:
        config, store = load_runtime()
        exporter = BundleExporter(store, config.paths)
        target = destination or config.paths.backups_dir

        if markdown or context_id:
            options = MarkdownExportOptions(
                include_attachments=config.export.include_attachments,
                include_archived=(
                    config.export.include_archived if include_archived is None else include_archived
                ),
                organize_by=organize_by or OrganizeBy(config.export.organize_by),
            )
            if context_id:
                output = exporter.export_context(context_id, target, options)
            else:
                with progress_bar("Exporting markdown") as update:
                    output = exporter.export_markdown(
                        target, options, lambda p: update(p.phase, p.current, p.total)
                    )
            console.print(f"[green]✓[/green] Markdown written to {output}")
            return

        with progress_bar("Exporting") as update:

            def report(progress: ExportProgress) -> None:
                update(progress.phase, progress.current, progress.total)

            bundle_dir = exporter.export_full(target, report)

        console.print(f"[green]✓[/green] Exported to {bundle_dir}")
        _print_manifest_summary(bundle_dir)

    except Exception as e:
        raise typer.Exit(handle_error(e, is_debug(ctx)))
