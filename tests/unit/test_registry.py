"""Tests for project and plan bookkeeping."""

import sqlite3

import pytest

from planz.core.plans.registry import (
    create_plan,
    delete_plan,
    delete_project,
    get_plan_id,
    list_plans,
    list_projects,
    rename_plan,
    summarize_plan,
)
from planz.core.tree.mutations import add_node
from planz.errors import AlreadyExistsError, NotFoundError

PROJECT = "/work/project"


def test_create_plan_creates_project_implicitly(conn: sqlite3.Connection) -> None:
    plan_id = create_plan(conn, PROJECT, "roadmap")
    assert get_plan_id(conn, PROJECT, "roadmap") == plan_id
    assert [p.path for p in list_projects(conn)] == [PROJECT]


def test_plan_names_are_unique_per_project(conn: sqlite3.Connection) -> None:
    create_plan(conn, PROJECT, "roadmap")
    with pytest.raises(AlreadyExistsError, match="roadmap"):
        create_plan(conn, PROJECT, "roadmap")
    # The same name in another project is fine.
    create_plan(conn, "/elsewhere", "roadmap")


def test_get_plan_id_unknown_plan(conn: sqlite3.Connection) -> None:
    with pytest.raises(NotFoundError, match="nope"):
        get_plan_id(conn, PROJECT, "nope")


def test_delete_plan_removes_its_nodes(conn: sqlite3.Connection) -> None:
    plan_id = create_plan(conn, PROJECT, "roadmap")
    add_node(conn, plan_id, "A/B", parents=True)
    delete_plan(conn, PROJECT, "roadmap")

    assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 0
    with pytest.raises(NotFoundError):
        delete_plan(conn, PROJECT, "roadmap")


def test_rename_plan(conn: sqlite3.Connection) -> None:
    plan_id = create_plan(conn, PROJECT, "old")
    create_plan(conn, PROJECT, "taken")
    rename_plan(conn, PROJECT, "old", "new")
    assert get_plan_id(conn, PROJECT, "new") == plan_id

    with pytest.raises(AlreadyExistsError):
        rename_plan(conn, PROJECT, "new", "taken")
    with pytest.raises(NotFoundError):
        rename_plan(conn, PROJECT, "old", "other")


def test_summarize_and_list_plans(conn: sqlite3.Connection) -> None:
    plan_id = create_plan(conn, PROJECT, "roadmap")
    add_node(conn, plan_id, "A")
    add_node(conn, plan_id, "B")
    summarize_plan(conn, PROJECT, "roadmap", "Q3 goals")

    [summary] = list_plans(conn, PROJECT)
    assert summary.name == "roadmap"
    assert summary.summary == "Q3 goals"
    assert summary.node_count == 2
    assert summary.created_at
    assert summary.updated_at


def test_list_plans_most_recently_updated_first(conn: sqlite3.Connection) -> None:
    create_plan(conn, PROJECT, "first")
    create_plan(conn, PROJECT, "second")
    conn.execute("UPDATE plans SET updated_at = '2000-01-01 00:00:00' WHERE name = 'second'")
    assert [p.name for p in list_plans(conn, PROJECT)] == ["first", "second"]


def test_list_plans_of_unknown_project_is_empty(conn: sqlite3.Connection) -> None:
    assert list_plans(conn, "/never/used") == []


def test_list_projects_counts_plans(conn: sqlite3.Connection) -> None:
    create_plan(conn, PROJECT, "a")
    create_plan(conn, PROJECT, "b")
    create_plan(conn, "/other", "c")
    counts = {p.path: p.plan_count for p in list_projects(conn)}
    assert counts == {PROJECT: 2, "/other": 1}


def test_delete_project_removes_everything_under_it(conn: sqlite3.Connection) -> None:
    plan_id = create_plan(conn, PROJECT, "roadmap")
    add_node(conn, plan_id, "A")
    create_plan(conn, "/other", "keep")

    assert delete_project(conn, PROJECT) is True
    assert delete_project(conn, PROJECT) is False
    assert list_plans(conn, PROJECT) == []
    assert conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0] == 0
    assert [p.name for p in list_plans(conn, "/other")] == ["keep"]
