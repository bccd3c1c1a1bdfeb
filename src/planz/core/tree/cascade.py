"""Done/undone propagation.

The two directions are asymmetric. Marking a node done broadcasts down to the
whole subtree and bubbles up only while every sibling is done. Marking a node
undone touches the node alone and then clears every ancestor up to the root.
"""

import sqlite3
from collections.abc import Iterable

from loguru import logger

from planz.core.database import queries
from planz.core.tree.paths import resolve_node
from planz.errors import UserError


def mark_done(conn: sqlite3.Connection, node_id: int) -> None:
    queries.set_subtree_done(conn, node_id, True)
    for ancestor_id in queries.get_ancestor_ids(conn, node_id):
        if queries.count_undone_children(conn, ancestor_id):
            break
        queries.set_done(conn, [ancestor_id], True)
        logger.debug("Propagated done to node {}", ancestor_id)


def mark_undone(conn: sqlite3.Connection, node_id: int) -> None:
    queries.set_done(conn, [node_id], False)
    ancestors = queries.get_ancestor_ids(conn, node_id)
    queries.set_done(conn, ancestors, False)
    if ancestors:
        logger.debug("Propagated undone to {} ancestor(s)", len(ancestors))


def set_status(
    conn: sqlite3.Connection, plan_id: int, identifiers: Iterable[str], *, done: bool
) -> int:
    """Mark each identifier done or undone, in order, within the caller's transaction.

    Identifiers that fail to resolve are logged and skipped rather than
    aborting the others.

    Returns:
        How many identifiers were resolved and marked.
    """
    marked = 0
    for identifier in identifiers:
        try:
            node_id = resolve_node(conn, plan_id, identifier)
        except UserError as e:
            logger.warning("Skipped '{}': {}", identifier, e)
            continue
        if done:
            mark_done(conn, node_id)
        else:
            mark_undone(conn, node_id)
        marked += 1
    return marked
