"""Opening the plan store."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from planz.config import BUSY_TIMEOUT, DB_NAME, LOCK_NAME
from planz.core.database.guard import WriteLock
from planz.core.database.schema import get_schema_version, migrate_schema
from planz.errors import StoreError


def store_paths(data_dir: Path) -> tuple[Path, Path]:
    """Return (database path, lock file path) inside ``data_dir``."""
    return data_dir / DB_NAME, data_dir / LOCK_NAME


def open_connection(data_dir: Path) -> sqlite3.Connection:
    """Open the store in ``data_dir``, creating it and its schema if needed.

    The connection runs in autocommit mode so the write guard owns every
    transaction boundary. WAL lets readers proceed while a writer holds its
    transaction.
    """
    db_path, lock_path = store_paths(data_dir)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT, isolation_level=None)
    except (OSError, sqlite3.Error) as e:
        msg = f"Failed to open plan store {db_path}: {e}"
        raise StoreError(msg) from e

    try:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA foreign_keys = ON")
        if get_schema_version(conn) is None:
            # Another process may be creating it right now.
            with WriteLock(lock_path):
                migrate_schema(conn)
        else:
            migrate_schema(conn)
    except sqlite3.Error as e:
        conn.close()
        msg = f"Failed to prepare plan store {db_path}: {e}"
        raise StoreError(msg) from e
    return conn


@contextmanager
def connect(data_dir: Path) -> Iterator[sqlite3.Connection]:
    """Context manager wrapper for open_connection(); always closes."""
    conn = open_connection(data_dir)
    try:
        yield conn
    finally:
        conn.close()
