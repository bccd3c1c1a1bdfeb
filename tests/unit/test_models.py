"""Tests for domain models."""

import pytest

from planz.models.node import Node, PlanProgress, RootProgress, TreeNode


def _node(**overrides: object) -> Node:
    fields: dict[str, object] = {
        "id": 10,
        "plan_id": 1,
        "parent_id": None,
        "local_id": 5,
        "title": "Task",
        "description": "",
        "done": False,
        "position": 0,
    }
    fields.update(overrides)
    return Node(**fields)  # type: ignore[arg-type]


def test_node_is_frozen() -> None:
    node = _node()
    with pytest.raises(AttributeError):
        node.title = "changed"  # type: ignore[misc]


def test_node_ref_uses_local_id() -> None:
    assert _node(local_id=42).ref == "#42"


def test_tree_node_has_children() -> None:
    leaf = TreeNode(local_id=2, title="Leaf", description="", done=False)
    parent = TreeNode(local_id=1, title="Parent", description="", done=False, children=(leaf,))
    assert parent.has_children
    assert not leaf.has_children


def test_progress_percent_rounds_down_and_handles_empty() -> None:
    assert RootProgress(local_id=1, title="A", done=2, total=3).percent == 66
    assert RootProgress(local_id=1, title="A", done=0, total=0).percent == 0
    assert PlanProgress(name="p", roots=()).percent == 0


def test_plan_progress_sums_roots() -> None:
    progress = PlanProgress(
        name="p",
        roots=(
            RootProgress(local_id=1, title="A", done=1, total=2),
            RootProgress(local_id=3, title="B", done=2, total=2),
        ),
    )
    assert (progress.done, progress.total, progress.percent) == (3, 4, 75)
