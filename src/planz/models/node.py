"""Domain models for plans and their node trees."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Node:
    """A single stored node of a plan tree."""

    id: int
    plan_id: int
    parent_id: int | None
    local_id: int
    title: str
    description: str
    done: bool
    position: int
    child_count: int = 0

    @property
    def ref(self) -> str:
        """External identifier, e.g. ``#5``."""
        return f"#{self.local_id}"


@dataclass(frozen=True)
class TreeNode:
    """A node with its ordered children, as handed to renderers."""

    local_id: int
    title: str
    description: str
    done: bool
    children: tuple["TreeNode", ...] = ()

    @property
    def has_children(self) -> bool:
        return bool(self.children)


@dataclass(frozen=True)
class PlanSummary:
    """One row of a project's plan listing."""

    name: str
    summary: str
    node_count: int
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class ProjectSummary:
    """One row of the project listing."""

    path: str
    plan_count: int
    last_updated: str | None


def _percent(done: int, total: int) -> int:
    return (done * 100) // total if total else 0


@dataclass(frozen=True)
class RootProgress:
    """Completion counts for one root and its whole subtree."""

    local_id: int
    title: str
    done: int
    total: int

    @property
    def percent(self) -> int:
        return _percent(self.done, self.total)


@dataclass(frozen=True)
class PlanProgress:
    """Completion counts for a whole plan."""

    name: str
    roots: tuple[RootProgress, ...]

    @property
    def done(self) -> int:
        return sum(r.done for r in self.roots)

    @property
    def total(self) -> int:
        return sum(r.total for r in self.roots)

    @property
    def percent(self) -> int:
        return _percent(self.done, self.total)
