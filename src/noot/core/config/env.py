"""
Environment file loading.

Before the configuration is built, NOOT_* settings may come from .env
files, read in this order:

1. `.env` in the working directory
2. `~/.config/noot/.env` (honoring XDG_CONFIG_HOME)
3. `{data_dir}/.env`, next to config.json

The data directory is resolved after the first two files are read, so
either of them may point NOOT_DATA_DIR somewhere else. A file never
overrides a variable that is already set, whether by the process
environment or by a file read before it.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .loader import get_data_dir

logger = logging.getLogger(__name__)

ENV_FILENAME = ".env"


def get_user_env_path() -> Path:
    """Path of the per-user .env file."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "noot" / ENV_FILENAME


def load_env_files(project_dir: Path | None = None) -> list[Path]:
    """
    Load variables from the project, user and data-directory .env files.

    Args:
        project_dir: Directory holding the project .env (defaults to cwd)

    Returns:
        Files that were found and read, in load order

    Example:
        >>> load_env_files()
        >>> config = load_config()
    """
    loaded: list[Path] = []
    for path in ((project_dir or Path.cwd()) / ENV_FILENAME, get_user_env_path()):
        _load_env_file(path, loaded)
    _load_env_file(get_data_dir() / ENV_FILENAME, loaded)
    return loaded


def _load_env_file(path: Path, loaded: list[Path]) -> None:
    if not path.is_file() or path.resolve() in (p.resolve() for p in loaded):
        return
    load_dotenv(path, override=False)
    logger.debug("Loaded environment from %s", path)
    loaded.append(path)
