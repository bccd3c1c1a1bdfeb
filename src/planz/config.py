"""Configuration constants for planz."""

import os
from pathlib import Path

# Nodes may nest at most this deep (root = depth 1).
MAX_DEPTH: int = 4

# Path separator inside node paths; never allowed in a title.
PATH_SEPARATOR: str = "/"

DEFAULT_DATA_DIR: Path = Path("~/.local/share/planz").expanduser()

DB_NAME: str = "plans.db"
LOCK_NAME: str = "plans.db.lock"

# Seconds SQLite waits on a competing writer before giving up.
BUSY_TIMEOUT: int = 10


def resolve_data_dir(data_dir: Path | None = None) -> Path:
    """Return the data directory: explicit argument, then $PLANZ_DATA_DIR, then the default."""
    if data_dir is not None:
        return data_dir.expanduser()
    env_dir = os.environ.get("PLANZ_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return DEFAULT_DATA_DIR


def resolve_project(project: Path | str | None = None) -> str:
    """Return the absolute project path a set of plans is scoped to."""
    return str(Path(project or ".").expanduser().resolve())
