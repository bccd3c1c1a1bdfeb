"""Structural edits to a plan tree: add, remove, rename, describe, move, refine.

Callers run each function inside ``write_transaction`` so a failure rolls the
whole edit back. ``refine`` is the one operation that applies part of its
input: every child path runs in its own savepoint and is skipped on failure.
"""

import sqlite3

from loguru import logger

from planz.config import MAX_DEPTH, PATH_SEPARATOR
from planz.core.database import queries
from planz.core.database.guard import savepoint
from planz.core.tree.paths import (
    parse_path,
    resolve_node,
    resolve_parent,
    resolve_path,
    validate_title,
)
from planz.errors import (
    HasChildrenError,
    InvalidPathError,
    MaxDepthExceededError,
    UserError,
)
from planz.models.node import Node


def _check_room_below(conn: sqlite3.Connection, parent_id: int | None, context: str) -> None:
    """Fail unless a child of ``parent_id`` would stay within the depth limit."""
    if parent_id is not None and queries.get_node_depth(conn, parent_id) >= MAX_DEPTH:
        raise MaxDepthExceededError(MAX_DEPTH, context)


def _insert_child(
    conn: sqlite3.Connection,
    plan_id: int,
    parent_id: int | None,
    title: str,
    description: str = "",
) -> int:
    """Append a node as the last child of ``parent_id`` with a fresh local id."""
    position = queries.get_max_position(conn, plan_id, parent_id) + 1
    local_id = queries.next_local_id(conn, plan_id)
    node_id = queries.insert_node(
        conn,
        plan_id=plan_id,
        parent_id=parent_id,
        title=title,
        description=description,
        position=position,
        local_id=local_id,
    )
    logger.debug("Inserted #{} '{}' at position {}", local_id, title, position)
    return node_id


def _ensure_path(
    conn: sqlite3.Connection, plan_id: int, parent_id: int | None, parts: list[str]
) -> tuple[int | None, int]:
    """Walk ``parts`` below ``parent_id``, creating missing nodes.

    Returns the id of the last node and how many nodes were created.
    """
    created = 0
    for part in parts:
        validate_title(part)
        child = queries.find_child(conn, plan_id, parent_id, part)
        if child is None:
            child = _insert_child(conn, plan_id, parent_id, part)
            created += 1
        parent_id = child
    return parent_id, created


def add_node(
    conn: sqlite3.Connection,
    plan_id: int,
    path: str,
    description: str | None = None,
    *,
    parents: bool = False,
) -> Node:
    """Add the node named by the last segment of ``path``.

    Args:
        conn: Store connection inside a write transaction.
        plan_id: Owning plan.
        path: Slash-separated titles from a root to the new node.
        description: Optional description for the new node.
        parents: Create missing ancestors instead of failing.

    Returns:
        The inserted node.
    """
    parts = parse_path(path)
    if not parts:
        raise InvalidPathError(path, "empty path")
    title = parts[-1]
    validate_title(title)

    prefix = parts[:-1]
    parent_id: int | None = None
    if prefix:
        if parents:
            parent_id, _ = _ensure_path(conn, plan_id, None, prefix)
        else:
            parent_id = resolve_path(conn, plan_id, prefix)
    _check_room_below(conn, parent_id, path)

    node_id = _insert_child(conn, plan_id, parent_id, title, description or "")
    return queries.get_node(conn, node_id)


def remove_node(
    conn: sqlite3.Connection, plan_id: int, identifier: str, *, force: bool = False
) -> int:
    """Delete a node and its whole subtree; return how many nodes went."""
    node_id = resolve_node(conn, plan_id, identifier)
    if not force and queries.has_children(conn, node_id):
        raise HasChildrenError(identifier, "Use --force to remove it with its subtree")
    removed = 1 + len(queries.get_descendant_ids(conn, node_id))
    queries.delete_node(conn, node_id)
    logger.debug("Removed '{}' ({} node(s))", identifier, removed)
    return removed


def rename_node(conn: sqlite3.Connection, plan_id: int, identifier: str, new_title: str) -> Node:
    new_title = new_title.strip()
    validate_title(new_title)
    node_id = resolve_node(conn, plan_id, identifier)
    queries.update_title(conn, node_id, new_title)
    return queries.get_node(conn, node_id)


def describe_node(
    conn: sqlite3.Connection, plan_id: int, identifier: str, description: str
) -> Node:
    """Replace a node's description verbatim; an empty string clears it."""
    node_id = resolve_node(conn, plan_id, identifier)
    queries.update_description(conn, node_id, description)
    return queries.get_node(conn, node_id)


def _move_to_parent(conn: sqlite3.Connection, plan_id: int, node: Node, destination: str) -> None:
    parent_id = resolve_parent(conn, plan_id, destination)
    if parent_id is not None:
        if parent_id == node.id or node.id in queries.get_ancestor_ids(conn, parent_id):
            raise InvalidPathError(destination, "cannot move a node under itself")
    # Only the moved node's own depth is checked, not its descendants'.
    _check_room_below(conn, parent_id, destination)

    position = queries.get_max_position(conn, plan_id, parent_id) + 1
    queries.update_parent(conn, node.id, parent_id, position, node.title)
    logger.debug("Moved {} under {} at position {}", node.ref, parent_id, position)


def _resolve_sibling(conn: sqlite3.Connection, plan_id: int, node: Node, sibling: str) -> int:
    """Find the node to move after: a bare title is looked up among current siblings first."""
    ident = sibling.strip()
    if ident and not ident.startswith("#") and PATH_SEPARATOR not in ident:
        found = queries.find_child(conn, plan_id, node.parent_id, ident)
        if found is not None:
            return found
    sibling_id = resolve_node(conn, plan_id, sibling)
    if queries.get_parent_id(conn, sibling_id) != node.parent_id:
        raise InvalidPathError(sibling, "not a sibling of the node being moved")
    return sibling_id


def _move_after_sibling(conn: sqlite3.Connection, plan_id: int, node: Node, sibling: str) -> None:
    sibling_id = _resolve_sibling(conn, plan_id, node, sibling)
    if sibling_id == node.id:
        return
    sibling_pos = queries.get_position(conn, sibling_id)
    shifted = queries.shift_positions_after(
        conn, plan_id, node.parent_id, sibling_pos, exclude_id=node.id
    )
    queries.update_position(conn, node.id, sibling_pos + 1)
    logger.debug(
        "Moved {} to position {} ({} sibling(s) shifted)", node.ref, sibling_pos + 1, shifted
    )


def move_node(
    conn: sqlite3.Connection,
    plan_id: int,
    identifier: str,
    *,
    to: str | None = None,
    after: str | None = None,
) -> Node:
    """Re-parent a node (``to``) or reorder it among its siblings (``after``).

    Exactly one of ``to`` and ``after`` must be given. ``to=""`` makes the
    node a root.
    """
    if (to is None) == (after is None):
        msg = "Exactly one of 'to' or 'after' must be given"
        raise ValueError(msg)

    node = queries.get_node(conn, resolve_node(conn, plan_id, identifier))
    if to is not None:
        _move_to_parent(conn, plan_id, node, to)
    else:
        _move_after_sibling(conn, plan_id, node, after)  # type: ignore[arg-type]
    return queries.get_node(conn, node.id)


def refine_node(
    conn: sqlite3.Connection, plan_id: int, identifier: str, children: list[str]
) -> int:
    """Expand a leaf into a subtree built from relative child paths.

    Intermediate segments reuse an existing same-titled child or create one.
    A child path that is empty, too deep, carries an invalid title or collides
    with an existing sibling is skipped and leaves nothing behind.

    Returns:
        Number of nodes inserted, intermediates included.
    """
    node_id = resolve_node(conn, plan_id, identifier)
    if queries.has_children(conn, node_id):
        raise HasChildrenError(identifier, "Only leaf nodes can be refined")
    depth = queries.get_node_depth(conn, node_id)
    if depth >= MAX_DEPTH:
        raise MaxDepthExceededError(MAX_DEPTH, identifier)

    added = 0
    for index, child_path in enumerate(children):
        try:
            with savepoint(conn, f"refine_{index}"):
                parts = parse_path(child_path)
                if not parts:
                    raise InvalidPathError(child_path, "empty path")
                if depth + len(parts) > MAX_DEPTH:
                    raise MaxDepthExceededError(MAX_DEPTH, child_path)
                parent_id, created = _ensure_path(conn, plan_id, node_id, parts[:-1])
                validate_title(parts[-1])
                _insert_child(conn, plan_id, parent_id, parts[-1])
        except UserError as e:
            logger.warning("Skipped child '{}' of '{}': {}", child_path, identifier, e)
            continue
        added += created + 1

    logger.debug("Refined '{}' with {} node(s)", identifier, added)
    return added
