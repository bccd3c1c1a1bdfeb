"""Node-facing query surface of the plan store.

Functions here are single statements (or one recursive query) against the
``nodes`` table. They never open or commit transactions; mutating callers run
them inside ``write_transaction``. ``parent_id is None`` always means "the
plan's roots": comparisons use ``IS ?`` so NULL matches NULL.
"""

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from planz.errors import DuplicateTitleError, NotFoundError
from planz.models.node import Node

NODE_COLUMNS = (
    "id, plan_id, parent_id, local_id, title, description, done, position, "
    "(SELECT COUNT(*) FROM nodes c WHERE c.parent_id = nodes.id)"
)


def row_to_node(row: sqlite3.Row | tuple) -> Node:
    return Node(
        id=row[0],
        plan_id=row[1],
        parent_id=row[2],
        local_id=row[3],
        title=row[4],
        description=row[5],
        done=bool(row[6]),
        position=row[7],
        child_count=row[8],
    )


@contextmanager
def _unique_title(title: str) -> Iterator[None]:
    """Translate a sibling-title index violation into DuplicateTitleError."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        if "title" in str(e):
            raise DuplicateTitleError(title) from e
        raise


# --- Lookups ---


def get_node(conn: sqlite3.Connection, node_id: int) -> Node:
    row = conn.execute(f"SELECT {NODE_COLUMNS} FROM nodes WHERE id = ?", (node_id,)).fetchone()
    if row is None:
        msg = f"Node {node_id} not found"
        raise NotFoundError(msg)
    return row_to_node(row)


def find_child(
    conn: sqlite3.Connection, plan_id: int, parent_id: int | None, title: str
) -> int | None:
    """Return the id of the child of ``parent_id`` titled exactly ``title``."""
    row = conn.execute(
        "SELECT id FROM nodes WHERE plan_id = ? AND parent_id IS ? AND title = ?",
        (plan_id, parent_id, title),
    ).fetchone()
    return row[0] if row else None


def get_node_by_local_id(conn: sqlite3.Connection, plan_id: int, local_id: int) -> int | None:
    row = conn.execute(
        "SELECT id FROM nodes WHERE plan_id = ? AND local_id = ?",
        (plan_id, local_id),
    ).fetchone()
    return row[0] if row else None


def get_parent_id(conn: sqlite3.Connection, node_id: int) -> int | None:
    return get_node(conn, node_id).parent_id


def get_node_depth(conn: sqlite3.Connection, node_id: int) -> int:
    """Distance from the node's root, counting the root as depth 1."""
    row = conn.execute(
        """WITH RECURSIVE chain(id, parent_id) AS (
               SELECT id, parent_id FROM nodes WHERE id = ?
               UNION ALL
               SELECT n.id, n.parent_id FROM nodes n JOIN chain c ON n.id = c.parent_id
           )
           SELECT COUNT(*) FROM chain""",
        (node_id,),
    ).fetchone()
    return row[0]


def get_max_position(conn: sqlite3.Connection, plan_id: int, parent_id: int | None) -> int:
    """Highest sibling position under ``parent_id``, or -1 when there are none."""
    row = conn.execute(
        "SELECT COALESCE(MAX(position), -1) FROM nodes WHERE plan_id = ? AND parent_id IS ?",
        (plan_id, parent_id),
    ).fetchone()
    return row[0]


def get_position(conn: sqlite3.Connection, node_id: int) -> int:
    return get_node(conn, node_id).position


def has_children(conn: sqlite3.Connection, node_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM nodes WHERE parent_id = ? LIMIT 1", (node_id,)).fetchone()
    return row is not None


def count_undone_children(conn: sqlite3.Connection, node_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM nodes WHERE parent_id = ? AND done = 0", (node_id,)
    ).fetchone()
    return row[0]


def get_descendant_ids(conn: sqlite3.Connection, node_id: int) -> list[int]:
    """All nodes below ``node_id``, excluding the node itself."""
    rows = conn.execute(
        """WITH RECURSIVE descendants(id) AS (
               SELECT id FROM nodes WHERE parent_id = ?
               UNION ALL
               SELECT n.id FROM nodes n JOIN descendants d ON n.parent_id = d.id
           )
           SELECT id FROM descendants""",
        (node_id,),
    ).fetchall()
    return [r[0] for r in rows]


def get_ancestor_ids(conn: sqlite3.Connection, node_id: int) -> list[int]:
    """Ancestors of ``node_id``, nearest first, excluding the node itself."""
    rows = conn.execute(
        """WITH RECURSIVE ancestors(id, parent_id, level) AS (
               SELECT p.id, p.parent_id, 1
               FROM nodes n JOIN nodes p ON p.id = n.parent_id
               WHERE n.id = ?
               UNION ALL
               SELECT p.id, p.parent_id, a.level + 1
               FROM nodes p JOIN ancestors a ON p.id = a.parent_id
           )
           SELECT id FROM ancestors ORDER BY level""",
        (node_id,),
    ).fetchall()
    return [r[0] for r in rows]


def list_plan_nodes(conn: sqlite3.Connection, plan_id: int) -> list[Node]:
    """Every node of a plan, in sibling order within each parent."""
    rows = conn.execute(
        f"SELECT {NODE_COLUMNS} FROM nodes WHERE plan_id = ? ORDER BY parent_id, position, id",
        (plan_id,),
    ).fetchall()
    return [row_to_node(r) for r in rows]


# --- Writes ---


def next_local_id(conn: sqlite3.Connection, plan_id: int) -> int:
    """Mint the plan's next stable node id and advance its counter."""
    row = conn.execute("SELECT next_local_id FROM plans WHERE id = ?", (plan_id,)).fetchone()
    if row is None:
        msg = f"Plan {plan_id} not found"
        raise NotFoundError(msg)
    conn.execute("UPDATE plans SET next_local_id = next_local_id + 1 WHERE id = ?", (plan_id,))
    return row[0]


def insert_node(
    conn: sqlite3.Connection,
    *,
    plan_id: int,
    parent_id: int | None,
    title: str,
    description: str = "",
    position: int,
    local_id: int,
) -> int:
    """Insert a node and return its internal id."""
    with _unique_title(title):
        cursor = conn.execute(
            """INSERT INTO nodes (plan_id, parent_id, title, description, position, local_id)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (plan_id, parent_id, title, description, position, local_id),
        )
    return cursor.lastrowid  # type: ignore[return-value]


def update_title(conn: sqlite3.Connection, node_id: int, title: str) -> None:
    with _unique_title(title):
        conn.execute(
            "UPDATE nodes SET title = ?, updated_at = datetime('now') WHERE id = ?",
            (title, node_id),
        )


def update_description(conn: sqlite3.Connection, node_id: int, description: str) -> None:
    conn.execute(
        "UPDATE nodes SET description = ?, updated_at = datetime('now') WHERE id = ?",
        (description, node_id),
    )


def update_parent(
    conn: sqlite3.Connection, node_id: int, parent_id: int | None, position: int, title: str
) -> None:
    with _unique_title(title):
        conn.execute(
            "UPDATE nodes SET parent_id = ?, position = ?, updated_at = datetime('now') "
            "WHERE id = ?",
            (parent_id, position, node_id),
        )


def update_position(conn: sqlite3.Connection, node_id: int, position: int) -> None:
    conn.execute(
        "UPDATE nodes SET position = ?, updated_at = datetime('now') WHERE id = ?",
        (position, node_id),
    )


def shift_positions_after(
    conn: sqlite3.Connection,
    plan_id: int,
    parent_id: int | None,
    position: int,
    *,
    exclude_id: int,
) -> int:
    """Bump every sibling strictly after ``position`` by one; return rows shifted."""
    cursor = conn.execute(
        "UPDATE nodes SET position = position + 1 "
        "WHERE plan_id = ? AND parent_id IS ? AND position > ? AND id != ?",
        (plan_id, parent_id, position, exclude_id),
    )
    return cursor.rowcount


def delete_node(conn: sqlite3.Connection, node_id: int) -> int:
    """Delete a node; descendants go with it through the foreign-key cascade."""
    cursor = conn.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
    return cursor.rowcount


def set_done(conn: sqlite3.Connection, node_ids: Iterable[int], done: bool) -> int:
    """Set the done flag on the given nodes; return rows changed."""
    ids = list(node_ids)
    if not ids:
        return 0
    placeholders = ",".join("?" * len(ids))
    cursor = conn.execute(
        f"UPDATE nodes SET done = ?, updated_at = datetime('now') WHERE id IN ({placeholders})",
        [int(done), *ids],
    )
    return cursor.rowcount


def set_subtree_done(conn: sqlite3.Connection, node_id: int, done: bool) -> int:
    """Set the done flag on a node and every descendant; return rows changed."""
    cursor = conn.execute(
        """WITH RECURSIVE subtree(id) AS (
               SELECT ?
               UNION ALL
               SELECT n.id FROM nodes n JOIN subtree s ON n.parent_id = s.id
           )
           UPDATE nodes SET done = ?, updated_at = datetime('now')
           WHERE id IN (SELECT id FROM subtree)""",
        (node_id, int(done)),
    )
    return cursor.rowcount


def touch_plan(conn: sqlite3.Connection, plan_id: int) -> None:
    conn.execute("UPDATE plans SET updated_at = datetime('now') WHERE id = ?", (plan_id,))
