"""
Shared setup for CLI commands: logging, configuration, store and progress.

Each command builds its components once from these helpers and passes them
down; nothing here is cached at module level.
"""

import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from noot.core.config import NootConfig, load_config
from noot.core.store import Store

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for noot commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def is_debug(ctx: typer.Context) -> bool:
    root = ctx.find_root()
    return bool(root.obj and root.obj.get("debug"))


def load_runtime() -> tuple[NootConfig, Store]:
    """Load configuration and open (creating if needed) the local store."""
    config = load_config()
    store = Store.open(config.paths.db_path)
    return config, store


@contextmanager
def progress_bar(description: str) -> Iterator[Callable[[str, int, int], None]]:
    """
    Rich progress bar driven by (phase, current, total) updates.

    Example:
        >>> with progress_bar("Exporting") as update:
        ...     update("Writing manifest", 1, 5)
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task(description, total=None)

        def update(phase: str, current: int, total: int) -> None:
            progress.update(task_id, description=phase, completed=current, total=total or None)

        yield update
