"""Project and plan bookkeeping.

A project is an absolute filesystem path; plans are named trees inside it.
Projects are created implicitly by the first plan created under them.
"""

import sqlite3

from loguru import logger

from planz.errors import AlreadyExistsError, NotFoundError
from planz.models.node import PlanSummary, ProjectSummary


def get_or_create_project(conn: sqlite3.Connection, path: str) -> int:
    conn.execute("INSERT OR IGNORE INTO projects (path) VALUES (?)", (path,))
    row = conn.execute("SELECT id FROM projects WHERE path = ?", (path,)).fetchone()
    return row[0]


def get_plan_id(conn: sqlite3.Connection, project: str, name: str) -> int:
    """Resolve a plan by project path and name."""
    row = conn.execute(
        "SELECT pl.id FROM plans pl JOIN projects p ON p.id = pl.project_id "
        "WHERE p.path = ? AND pl.name = ?",
        (project, name),
    ).fetchone()
    if row is None:
        msg = f"Plan '{name}' not found"
        raise NotFoundError(msg)
    return row[0]


def create_plan(conn: sqlite3.Connection, project: str, name: str) -> int:
    project_id = get_or_create_project(conn, project)
    try:
        cursor = conn.execute(
            "INSERT INTO plans (project_id, name) VALUES (?, ?)", (project_id, name)
        )
    except sqlite3.IntegrityError as e:
        msg = f"Plan '{name}' already exists"
        raise AlreadyExistsError(msg) from e
    logger.debug("Created plan '{}' in {}", name, project)
    return cursor.lastrowid  # type: ignore[return-value]


def delete_plan(conn: sqlite3.Connection, project: str, name: str) -> None:
    """Delete a plan; its nodes go with it."""
    plan_id = get_plan_id(conn, project, name)
    conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
    logger.debug("Deleted plan '{}' in {}", name, project)


def rename_plan(conn: sqlite3.Connection, project: str, old_name: str, new_name: str) -> None:
    plan_id = get_plan_id(conn, project, old_name)
    try:
        conn.execute(
            "UPDATE plans SET name = ?, updated_at = datetime('now') WHERE id = ?",
            (new_name, plan_id),
        )
    except sqlite3.IntegrityError as e:
        msg = f"Plan '{new_name}' already exists"
        raise AlreadyExistsError(msg) from e


def summarize_plan(conn: sqlite3.Connection, project: str, name: str, summary: str) -> None:
    plan_id = get_plan_id(conn, project, name)
    conn.execute(
        "UPDATE plans SET summary = ?, updated_at = datetime('now') WHERE id = ?",
        (summary, plan_id),
    )


def list_plans(conn: sqlite3.Connection, project: str) -> list[PlanSummary]:
    """Plans of a project, most recently updated first. Unknown projects have none."""
    rows = conn.execute(
        """SELECT pl.name, pl.summary,
                  (SELECT COUNT(*) FROM nodes WHERE plan_id = pl.id),
                  pl.created_at, pl.updated_at
           FROM plans pl JOIN projects p ON p.id = pl.project_id
           WHERE p.path = ?
           ORDER BY pl.updated_at DESC, pl.id DESC""",
        (project,),
    ).fetchall()
    return [
        PlanSummary(name=r[0], summary=r[1], node_count=r[2], created_at=r[3], updated_at=r[4])
        for r in rows
    ]


def list_projects(conn: sqlite3.Connection) -> list[ProjectSummary]:
    rows = conn.execute(
        """SELECT p.path, COUNT(pl.id), MAX(pl.updated_at)
           FROM projects p LEFT JOIN plans pl ON p.id = pl.project_id
           GROUP BY p.id
           ORDER BY MAX(pl.updated_at) DESC, p.path"""
    ).fetchall()
    return [ProjectSummary(path=r[0], plan_count=r[1], last_updated=r[2]) for r in rows]


def delete_project(conn: sqlite3.Connection, project: str) -> bool:
    """Delete a project with all its plans. Returns False if it did not exist."""
    cursor = conn.execute("DELETE FROM projects WHERE path = ?", (project,))
    return cursor.rowcount > 0
