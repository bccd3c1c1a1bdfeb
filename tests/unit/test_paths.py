"""Tests for node path and #id resolution."""

import sqlite3

import pytest

from planz.core.database.queries import get_node
from planz.core.plans.registry import create_plan
from planz.core.tree.mutations import add_node
from planz.core.tree.paths import (
    is_valid_title,
    parse_path,
    resolve_node,
    resolve_parent,
    validate_title,
)
from planz.errors import (
    InvalidPathError,
    InvalidTitleError,
    MaxDepthExceededError,
    NotFoundError,
)


@pytest.fixture
def tree(conn: sqlite3.Connection, plan_id: int) -> dict[str, int]:
    """Phase 1 (#1) > Task A (#2) > Step (#3); Phase 2 (#4)."""
    ids = {}
    for path in ["Phase 1", "Phase 1/Task A", "Phase 1/Task A/Step", "Phase 2"]:
        ids[path] = add_node(conn, plan_id, path).id
    return ids


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("Phase 1/Task A", ["Phase 1", "Task A"]),
        ("  Phase 1 / Task A  ", ["Phase 1", "Task A"]),
        ("/Phase 1//Task A/", ["Phase 1", "Task A"]),
        ("", []),
        ("///", []),
        ("a/b/c/d", ["a", "b", "c", "d"]),
    ],
)
def test_parse_path_trims_and_drops_empty_segments(path: str, expected: list[str]) -> None:
    assert parse_path(path) == expected


def test_parse_path_rejects_more_than_four_segments() -> None:
    with pytest.raises(MaxDepthExceededError):
        parse_path("a/b/c/d/e")


def test_title_validation() -> None:
    assert is_valid_title("Task A")
    assert not is_valid_title("")
    assert not is_valid_title("a/b")
    with pytest.raises(InvalidTitleError):
        validate_title("a/b")


def test_resolve_by_path(conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]) -> None:
    assert resolve_node(conn, plan_id, "Phase 1/Task A/Step") == tree["Phase 1/Task A/Step"]
    assert resolve_node(conn, plan_id, " Phase 1 / Task A ") == tree["Phase 1/Task A"]


def test_resolve_by_local_id(conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]) -> None:
    assert resolve_node(conn, plan_id, "#3") == tree["Phase 1/Task A/Step"]
    assert get_node(conn, resolve_node(conn, plan_id, "#4")).title == "Phase 2"


def test_unknown_local_id_is_not_found(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    with pytest.raises(NotFoundError, match="#99"):
        resolve_node(conn, plan_id, "#99")


@pytest.mark.parametrize("identifier", [f"#{2**63}", "#99999999999999999999999"])
def test_local_id_beyond_integer_range_is_not_found(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int], identifier: str
) -> None:
    with pytest.raises(NotFoundError):
        resolve_node(conn, plan_id, identifier)


@pytest.mark.parametrize("identifier", ["#", "#abc", "#1a", "#-1"])
def test_malformed_hash_form_is_invalid_path(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int], identifier: str
) -> None:
    with pytest.raises(InvalidPathError):
        resolve_node(conn, plan_id, identifier)


def test_missing_step_is_invalid_path(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    with pytest.raises(InvalidPathError, match="Phase 1/Nope"):
        resolve_node(conn, plan_id, "Phase 1/Nope/Step")


def test_no_partial_title_match(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    with pytest.raises(InvalidPathError):
        resolve_node(conn, plan_id, "Phase")


def test_empty_identifier_is_invalid_path(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    with pytest.raises(InvalidPathError):
        resolve_node(conn, plan_id, "  ")


def test_empty_parent_means_plan_root(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    assert resolve_parent(conn, plan_id, "") is None
    assert resolve_parent(conn, plan_id, "Phase 2") == tree["Phase 2"]


def test_local_ids_are_scoped_to_their_plan(
    conn: sqlite3.Connection, plan_id: int, tree: dict[str, int]
) -> None:
    other = create_plan(conn, "/work/project", "other")
    add_node(conn, other, "Only")
    assert get_node(conn, resolve_node(conn, other, "#1")).title == "Only"
    with pytest.raises(NotFoundError):
        resolve_node(conn, other, "#2")
