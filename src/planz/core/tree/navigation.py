"""Tree navigation: ordered children, subtrees, progress counts."""

import sqlite3
from collections import defaultdict

from planz.core.database.queries import NODE_COLUMNS, list_plan_nodes, row_to_node
from planz.models.node import Node, PlanProgress, RootProgress, TreeNode


def get_children(
    conn: sqlite3.Connection,
    *,
    plan_id: int,
    parent_id: int | None,
) -> tuple[Node, ...]:
    """Get direct children of a node (or the plan's roots), ordered by position."""
    rows = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes WHERE plan_id = ? AND parent_id IS ? "
        "ORDER BY position, id",
        (plan_id, parent_id),
    ).fetchall()
    return tuple(row_to_node(r) for r in rows)


def _children_index(conn: sqlite3.Connection, plan_id: int) -> dict[int | None, list[Node]]:
    index: dict[int | None, list[Node]] = defaultdict(list)
    for node in list_plan_nodes(conn, plan_id):
        index[node.parent_id].append(node)
    return index


def get_subtree(
    conn: sqlite3.Connection,
    *,
    plan_id: int,
    root_id: int | None = None,
) -> tuple[TreeNode, ...]:
    """Get everything below ``root_id`` (or the whole plan) as nested TreeNodes.

    The plan's nodes are loaded in one query and indexed by parent, so the walk
    costs no further round trips. Siblings come out in position order.
    """
    index = _children_index(conn, plan_id)

    def build(parent_id: int | None) -> tuple[TreeNode, ...]:
        return tuple(
            TreeNode(
                local_id=node.local_id,
                title=node.title,
                description=node.description,
                done=node.done,
                children=build(node.id),
            )
            for node in index.get(parent_id, ())
        )

    return build(root_id)


def _count(tree: tuple[TreeNode, ...]) -> tuple[int, int]:
    done = total = 0
    for node in tree:
        sub_done, sub_total = _count(node.children)
        done += sub_done + int(node.done)
        total += sub_total + 1
    return done, total


def plan_progress(conn: sqlite3.Connection, *, plan_id: int, name: str) -> PlanProgress:
    """Per-root done/total counts over each root's whole subtree."""
    roots = []
    for root in get_subtree(conn, plan_id=plan_id):
        done, total = _count((root,))
        roots.append(RootProgress(local_id=root.local_id, title=root.title, done=done, total=total))
    return PlanProgress(name=name, roots=tuple(roots))
