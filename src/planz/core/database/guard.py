"""Concurrency guard for mutating operations.

Every mutation takes two locks, in order:

1. An advisory exclusive ``flock`` on a lock file next to the store. It
   serialises all mutating commands from every process, which covers
   multi-statement checks like "read max position, insert at max + 1".
2. A ``BEGIN IMMEDIATE`` transaction, so SQLite's write intent is taken when
   the transaction starts rather than at the first write.

The lock belongs to an open file descriptor, so a crashed holder releases it
when its process exits. Acquisition blocks with no timeout.
"""

import fcntl
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

from planz.errors import LockError, TransactionError


class WriteLock:
    """Process-wide exclusive lock backed by ``flock`` on a lock file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Block until the exclusive lock is held."""
        if self._fd is not None:
            msg = f"Write lock {self.path} is already held by this handle"
            raise LockError(msg)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            msg = f"Could not open write lock {self.path}: {e}"
            raise LockError(msg) from e
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as e:
            os.close(fd)
            msg = f"Could not acquire write lock {self.path}: {e}"
            raise LockError(msg) from e
        self._fd = fd
        logger.debug("Acquired write lock {}", self.path)

    def release(self) -> None:
        """Release the lock. Safe to call when not held."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Released write lock {}", self.path)

    def __enter__(self) -> "WriteLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


@contextmanager
def write_transaction(conn: sqlite3.Connection, lock_path: Path) -> Iterator[sqlite3.Connection]:
    """Run a block under the write lock inside one immediate transaction.

    Commits when the block finishes, rolls back in full on any exception. The
    lock is released on every exit path. ``PlanzError`` propagates unchanged;
    any other ``sqlite3.Error`` is wrapped in ``TransactionError``.

    The connection must be in autocommit mode (``isolation_level=None``).
    """
    with WriteLock(lock_path):
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            msg = f"Could not begin write transaction: {e}"
            raise TransactionError(msg) from e

        try:
            yield conn
        except BaseException as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.debug("Rolled back write transaction ({})", type(exc).__name__)
            if isinstance(exc, sqlite3.Error):
                msg = f"Write transaction failed: {exc}"
                raise TransactionError(msg) from exc
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            msg = f"Could not commit write transaction: {e}"
            raise TransactionError(msg) from e


@contextmanager
def savepoint(conn: sqlite3.Connection, name: str) -> Iterator[None]:
    """Nest an all-or-nothing step inside the current transaction.

    On exception the step's changes are undone and the exception propagates;
    the enclosing transaction stays open.
    """
    conn.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        conn.execute(f"ROLLBACK TO {name}")
        conn.execute(f"RELEASE {name}")
        raise
    conn.execute(f"RELEASE {name}")
