"""
Noot CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer
from rich.console import Console

from noot import __version__
from noot.cli import export, import_cmd, workspace
from noot.cli.runtime import setup_logging
from noot.core.config.env import load_env_files

# Help panel names for command grouping
PANEL_DATA = "Back Up and Move Your Notes"
PANEL_SYNC = "Sync to a Workspace"

app = typer.Typer(
    name="noot",
    help="Export, import and sync your noot notes",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Noot - notes, contexts and meetings, portable.

    Quick Start:
        noot export                       # Full backup bundle
        noot import BUNDLE --preview      # Inspect a bundle
        noot import BUNDLE                # Merge it into your notes
        noot workspace connect TOKEN      # Hook up a remote workspace
        noot workspace sync               # Push new and changed notes

    Environment:
        NOOT_DATA_DIR                     # Where noot.db and config.json live
        NOOT_BACKUPS_DIR                  # Default export destination
    """
    # Precedence: OS env > project .env > user .env > data dir .env
    load_env_files()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="export", rich_help_panel=PANEL_DATA)(export.export)
app.command(name="import", rich_help_panel=PANEL_DATA)(import_cmd.import_bundle)
app.command(name="import-markdown", rich_help_panel=PANEL_DATA)(import_cmd.import_markdown)
app.add_typer(workspace.app, name="workspace", rich_help_panel=PANEL_SYNC)


@app.command()
def version() -> None:
    """Show noot version and exit."""
    console.print(f"noot version {__version__}")


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
