"""Helpers shared by the unit tests."""

from planz.models.node import TreeNode


def flatten(tree: tuple[TreeNode, ...], prefix: str = "") -> dict[str, TreeNode]:
    """Map every node of a subtree by its full path."""
    result: dict[str, TreeNode] = {}
    for node in tree:
        path = f"{prefix}{node.title}"
        result[path] = node
        result.update(flatten(node.children, f"{path}/"))
    return result


def titles(tree: tuple[TreeNode, ...]) -> list[str]:
    return [node.title for node in tree]
