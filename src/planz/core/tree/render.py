"""Render plan subtrees as text, markdown, JSON, or XML, and progress as bars."""

import io
import json
import xml.etree.ElementTree as ET

from planz.models.node import PlanProgress, TreeNode

PROGRESS_BAR_WIDTH = 20
_INDENT = "  "


def _checkbox(node: TreeNode) -> str:
    return "- [x] " if node.done else "- [ ] "


def render_text(name: str, tree: tuple[TreeNode, ...]) -> str:
    """Render a subtree as an indented checklist headed by the plan name.

    Each node is ``- [x] Title [id]``; its description follows on the next
    line, one level deeper.
    """
    out = io.StringIO()
    out.write(f"# {name}\n\n")

    def walk(nodes: tuple[TreeNode, ...], depth: int) -> None:
        indent = _INDENT * depth
        for node in nodes:
            out.write(f"{indent}{_checkbox(node)}{node.title} [{node.local_id}]\n")
            if node.description:
                out.write(f"{indent}{_INDENT}{node.description}\n")
            walk(node.children, depth + 1)

    walk(tree, 0)
    return out.getvalue()


def render_markdown(name: str, tree: tuple[TreeNode, ...]) -> str:
    """Render a subtree as a markdown task list; descriptions become paragraphs."""
    out = io.StringIO()
    out.write(f"# {name}\n\n")

    def walk(nodes: tuple[TreeNode, ...], depth: int) -> None:
        indent = _INDENT * depth
        for node in nodes:
            out.write(f"{indent}{_checkbox(node)}{node.title} [{node.local_id}]\n")
            if node.description:
                out.write(f"\n{indent}{_INDENT}{node.description}\n\n")
            walk(node.children, depth + 1)

    walk(tree, 0)
    return out.getvalue()


def tree_to_dicts(tree: tuple[TreeNode, ...]) -> list[dict]:
    """Nested JSON-able dicts; ``description`` only appears when non-empty."""
    result = []
    for node in tree:
        item: dict = {"id": node.local_id, "title": node.title, "done": node.done}
        if node.description:
            item["description"] = node.description
        item["children"] = tree_to_dicts(node.children)
        result.append(item)
    return result


def render_json(tree: tuple[TreeNode, ...]) -> str:
    return json.dumps(tree_to_dicts(tree), ensure_ascii=False)


def _xml_nodes(parent: ET.Element, tree: tuple[TreeNode, ...]) -> None:
    for node in tree:
        element = ET.SubElement(
            parent,
            "node",
            id=str(node.local_id),
            title=node.title,
            done="true" if node.done else "false",
        )
        if node.description:
            ET.SubElement(element, "description").text = node.description
        _xml_nodes(element, node.children)


def render_xml(name: str, tree: tuple[TreeNode, ...]) -> str:
    root = ET.Element("plan", name=name)
    _xml_nodes(root, tree)
    ET.indent(root, space=_INDENT)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def progress_bar(done: int, total: int, width: int = PROGRESS_BAR_WIDTH) -> str:
    filled = (done * width) // total if total else 0
    return "#" * filled + "-" * (width - filled)


def render_progress(progress: PlanProgress) -> str:
    out = io.StringIO()
    out.write(f"Progress for '{progress.name}':\n\n")
    for root in progress.roots:
        bar = progress_bar(root.done, root.total)
        out.write(f"  {root.title:<30} [{bar}] {root.percent}% ({root.done}/{root.total})\n")
    out.write("\n")
    out.write(f"  Total: {progress.percent}% ({progress.done}/{progress.total})\n")
    return out.getvalue()
