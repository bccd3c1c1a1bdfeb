"""Tests for MCP tool core functions."""

from pathlib import Path

import pytest

from planz.mcp.server import (
    _resolve_paths,
    planz_add,
    planz_describe,
    planz_get_node,
    planz_list_plans,
    planz_move,
    planz_progress,
    planz_refine,
    planz_remove,
    planz_rename,
    planz_set_status,
    planz_show,
)
from planz.service import PlanStore


@pytest.fixture
def populated(store: PlanStore) -> PlanStore:
    store.add("p", "Phase 1", "first phase")
    store.add("p", "Phase 1/Task A")
    store.add("p", "Phase 1/Task B")
    store.add("p", "Phase 2")
    return store


def test_planz_list_plans(populated: PlanStore) -> None:
    result = planz_list_plans(populated)
    assert result["count"] == 1
    assert result["project"] == populated.project
    [plan] = result["plans"]
    assert plan["name"] == "p"
    assert plan["node_count"] == 4


def test_planz_show_json_nests_children(populated: PlanStore) -> None:
    result = planz_show(populated, plan="p")
    assert "error" not in result
    phase1 = result["nodes"][0]
    assert phase1["description"] == "first phase"
    assert [c["title"] for c in phase1["children"]] == ["Task A", "Task B"]


def test_planz_show_markdown_below_node(populated: PlanStore) -> None:
    result = planz_show(populated, plan="p", node="#1", output_format="markdown")
    assert result["content"].startswith("# p\n")
    assert "- [ ] Task A [2]" in result["content"]
    assert "Phase 2" not in result["content"]


def test_planz_show_unknown_plan_returns_error(populated: PlanStore) -> None:
    result = planz_show(populated, plan="nope")
    assert "nope" in result["error"]


def test_planz_get_node_includes_children(populated: PlanStore) -> None:
    result = planz_get_node(populated, plan="p", node="Phase 1")
    assert result["node"]["ref"] == "#1"
    assert result["node"]["child_count"] == 2
    assert [c["title"] for c in result["children"]] == ["Task A", "Task B"]


def test_planz_add_and_errors(populated: PlanStore) -> None:
    result = planz_add(populated, plan="p", path="Phase 2/Task C", description="new")
    assert result["added"]["id"] == 5
    assert result["added"]["description"] == "new"

    assert "Duplicate title" in planz_add(populated, plan="p", path="Phase 2/Task C")["error"]
    assert "error" in planz_add(populated, plan="p", path="X/Y")
    assert "error" not in planz_add(populated, plan="p", path="X/Y", parents=True)


def test_planz_remove(populated: PlanStore) -> None:
    assert "error" in planz_remove(populated, plan="p", node="Phase 1")
    assert planz_remove(populated, plan="p", node="Phase 1", force=True) == {"removed": 3}


def test_planz_rename_and_describe(populated: PlanStore) -> None:
    renamed = planz_rename(populated, plan="p", node="#2", title="Task Z")
    assert renamed["renamed"]["title"] == "Task Z"
    assert renamed["renamed"]["ref"] == "#2"

    described = planz_describe(populated, plan="p", node="#2", description="")
    assert described["described"]["description"] == ""
    assert "error" in planz_rename(populated, plan="p", node="#2", title="a/b")


def test_planz_move(populated: PlanStore) -> None:
    assert "error" in planz_move(populated, plan="p", node="#2")
    assert "error" in planz_move(populated, plan="p", node="#2", to="", after="Task B")

    result = planz_move(populated, plan="p", node="Phase 1", after="Phase 2")
    assert result["moved"]["title"] == "Phase 1"
    roots = planz_show(populated, plan="p")["nodes"]
    assert [r["title"] for r in roots] == ["Phase 2", "Phase 1"]

    result = planz_move(populated, plan="p", node="#2", to="Phase 2")
    assert "error" not in result
    assert planz_get_node(populated, plan="p", node="Phase 2")["node"]["child_count"] == 1


def test_planz_refine_reports_added_and_requested(populated: PlanStore) -> None:
    result = planz_refine(populated, plan="p", node="Phase 2", children=["S1", "S1", "S2"])
    assert result == {"added": 2, "requested": 3}

    assert "error" in planz_refine(populated, plan="p", node="Phase 2", children=["S3"])
    assert "error" in planz_refine(populated, plan="p", node="#2", children=[])


def test_planz_set_status_and_progress(populated: PlanStore) -> None:
    result = planz_set_status(populated, plan="p", nodes=["#2", "#3", "#99"], done=True)
    assert result == {"marked": 2, "requested": 3, "done": True}

    progress = planz_progress(populated, plan="p")
    assert (progress["done"], progress["total"], progress["percent"]) == (3, 4, 75)
    assert progress["roots"][0]["percent"] == 100
    assert "Total: 75% (3/4)" in progress["content"]

    result = planz_set_status(populated, plan="p", nodes=["#2"], done=False)
    assert result["marked"] == 1
    assert planz_progress(populated, plan="p")["done"] == 1


def test_resolve_paths_reads_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PLANZ_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PLANZ_PROJECT", "/some/project")
    assert _resolve_paths() == (tmp_path, "/some/project")

    monkeypatch.delenv("PLANZ_DATA_DIR")
    monkeypatch.delenv("PLANZ_PROJECT")
    assert _resolve_paths() == (None, None)
