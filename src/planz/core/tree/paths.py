"""Resolve external node identifiers: ``#<local id>`` or slash-separated title paths."""

import re
import sqlite3

from planz.config import MAX_DEPTH, PATH_SEPARATOR
from planz.core.database.queries import find_child, get_node_by_local_id
from planz.errors import InvalidPathError, InvalidTitleError, MaxDepthExceededError, NotFoundError

_LOCAL_ID_RE = re.compile(r"#(\d+)")

# Largest value an SQLite INTEGER can hold.
_MAX_LOCAL_ID = 2**63 - 1


def parse_path(path: str) -> list[str]:
    """Split a path into trimmed, non-empty segments.

    Leading, trailing and doubled separators are tolerated. More than
    ``MAX_DEPTH`` segments raises ``MaxDepthExceededError``.
    """
    parts = [part.strip() for part in path.split(PATH_SEPARATOR)]
    parts = [part for part in parts if part]
    if len(parts) > MAX_DEPTH:
        raise MaxDepthExceededError(MAX_DEPTH, path)
    return parts


def is_valid_title(title: str) -> bool:
    return bool(title) and PATH_SEPARATOR not in title


def validate_title(title: str) -> None:
    if not is_valid_title(title):
        raise InvalidTitleError(title)


def is_local_id(identifier: str) -> bool:
    return identifier.strip().startswith("#")


def resolve_path(conn: sqlite3.Connection, plan_id: int, parts: list[str]) -> int:
    """Walk ``parts`` down from the plan's roots by exact title match."""
    if not parts:
        raise InvalidPathError("", "empty path")
    current: int | None = None
    for depth, part in enumerate(parts, start=1):
        child = find_child(conn, plan_id, current, part)
        if child is None:
            walked = PATH_SEPARATOR.join(parts[:depth])
            raise InvalidPathError(PATH_SEPARATOR.join(parts), f"'{walked}' does not exist")
        current = child
    return current  # type: ignore[return-value]


def resolve_node(conn: sqlite3.Connection, plan_id: int, identifier: str) -> int:
    """Resolve ``#<id>`` or a title path to an internal node id.

    Raises:
        InvalidPathError: malformed ``#`` form, empty identifier, or a path
            step that does not exist.
        NotFoundError: ``#<id>`` names no node of this plan.
        MaxDepthExceededError: the path has more than ``MAX_DEPTH`` segments.
    """
    ident = identifier.strip()
    if ident.startswith("#"):
        match = _LOCAL_ID_RE.fullmatch(ident)
        if match is None:
            raise InvalidPathError(identifier, "expected '#' followed by digits")
        local_id = int(match.group(1))
        node_id = None
        if local_id <= _MAX_LOCAL_ID:
            node_id = get_node_by_local_id(conn, plan_id, local_id)
        if node_id is None:
            msg = f"Node '{ident}' not found"
            raise NotFoundError(msg)
        return node_id
    return resolve_path(conn, plan_id, parse_path(ident))


def resolve_parent(conn: sqlite3.Connection, plan_id: int, identifier: str) -> int | None:
    """Like resolve_node, but an empty identifier means "no parent" (the plan root)."""
    if not identifier.strip():
        return None
    return resolve_node(conn, plan_id, identifier)
