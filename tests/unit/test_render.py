"""Tests for plan renderers."""

import json
import xml.etree.ElementTree as ET

from planz.core.tree.render import (
    progress_bar,
    render_json,
    render_markdown,
    render_progress,
    render_text,
    render_xml,
)
from planz.models.node import PlanProgress, RootProgress, TreeNode

TREE = (
    TreeNode(
        local_id=1,
        title="Phase 1",
        description="",
        done=False,
        children=(
            TreeNode(local_id=2, title="Task A", description="First <step>", done=True),
            TreeNode(local_id=3, title="Task B", description="", done=False),
        ),
    ),
    TreeNode(local_id=4, title="Phase 2", description="", done=False),
)


def test_render_text() -> None:
    assert render_text("p", TREE) == (
        "# p\n"
        "\n"
        "- [ ] Phase 1 [1]\n"
        "  - [x] Task A [2]\n"
        "    First <step>\n"
        "  - [ ] Task B [3]\n"
        "- [ ] Phase 2 [4]\n"
    )


def test_render_markdown_puts_descriptions_in_paragraphs() -> None:
    md = render_markdown("p", TREE)
    assert md.startswith("# p\n\n- [ ] Phase 1 [1]\n")
    assert "  - [x] Task A [2]\n\n    First <step>\n\n  - [ ] Task B [3]\n" in md


def test_render_json_nests_children_and_omits_empty_descriptions() -> None:
    data = json.loads(render_json(TREE))
    assert [n["title"] for n in data] == ["Phase 1", "Phase 2"]
    assert "description" not in data[0]
    task_a = data[0]["children"][0]
    assert task_a == {
        "id": 2,
        "title": "Task A",
        "done": True,
        "description": "First <step>",
        "children": [],
    }
    assert data[1]["children"] == []


def test_render_xml_escapes_and_nests() -> None:
    out = render_xml("a & b", TREE)
    assert out.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
    root = ET.fromstring(out.split("\n", 1)[1])
    assert root.tag == "plan"
    assert root.get("name") == "a & b"
    phase1 = root.find("node")
    assert phase1 is not None
    assert phase1.attrib == {"id": "1", "title": "Phase 1", "done": "false"}
    task_a = phase1.findall("node")[0]
    assert task_a.get("done") == "true"
    assert task_a.findtext("description") == "First <step>"
    assert "&lt;step&gt;" in out


def test_render_empty_tree() -> None:
    assert render_text("p", ()) == "# p\n\n"
    assert render_json(()) == "[]"


def test_progress_bar() -> None:
    assert progress_bar(0, 0) == "-" * 20
    assert progress_bar(1, 2) == "#" * 10 + "-" * 10
    assert progress_bar(3, 3) == "#" * 20


def test_render_progress() -> None:
    progress = PlanProgress(
        name="p",
        roots=(
            RootProgress(local_id=1, title="Phase 1", done=1, total=4),
            RootProgress(local_id=4, title="Phase 2", done=0, total=0),
        ),
    )
    out = render_progress(progress)
    assert out.startswith("Progress for 'p':\n\n")
    assert f"  {'Phase 1':<30} [{'#' * 5}{'-' * 15}] 25% (1/4)\n" in out
    assert "0% (0/0)" in out
    assert out.endswith("\n  Total: 25% (1/4)\n")
