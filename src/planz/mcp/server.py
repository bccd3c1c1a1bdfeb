"""MCP server exposing planz plan trees as tools."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from planz.core.tree.render import render_markdown, render_progress, tree_to_dicts
from planz.errors import PlanzError
from planz.models.node import Node
from planz.service import PlanStore


def _node_dict(node: Node) -> dict[str, Any]:
    return {
        "id": node.local_id,
        "ref": node.ref,
        "title": node.title,
        "description": node.description,
        "done": node.done,
        "child_count": node.child_count,
    }


def _error(e: PlanzError) -> dict[str, Any]:
    return {"error": str(e)}


# --- Core functions (testable without MCP context) ---


def planz_list_plans(store: PlanStore) -> dict[str, Any]:
    """List the plans of the server's project."""
    plans = store.list_plans()
    return {
        "project": store.project,
        "plans": [
            {
                "name": p.name,
                "summary": p.summary,
                "node_count": p.node_count,
                "created_at": p.created_at,
                "updated_at": p.updated_at,
            }
            for p in plans
        ],
        "count": len(plans),
    }


def planz_show(
    store: PlanStore,
    *,
    plan: str,
    node: str | None = None,
    output_format: str = "json",
) -> dict[str, Any]:
    """Read a plan tree, or the subtree below ``node``.

    Args:
        plan: Plan name.
        node: Optional path or #id to show below.
        output_format: "json" (nested structure) or "markdown".
    """
    try:
        tree = store.show(plan, node)
    except PlanzError as e:
        return _error(e)
    if output_format == "markdown":
        return {"plan": plan, "content": render_markdown(plan, tree)}
    return {"plan": plan, "nodes": tree_to_dicts(tree)}


def planz_get_node(store: PlanStore, *, plan: str, node: str) -> dict[str, Any]:
    """A single node with its direct children."""
    try:
        found = store.get_node(plan, node)
        children = store.children(plan, node)
    except PlanzError as e:
        return _error(e)
    return {"node": _node_dict(found), "children": [_node_dict(c) for c in children]}


def planz_progress(store: PlanStore, *, plan: str) -> dict[str, Any]:
    try:
        result = store.progress(plan)
    except PlanzError as e:
        return _error(e)
    return {
        "plan": plan,
        "done": result.done,
        "total": result.total,
        "percent": result.percent,
        "roots": [
            {
                "id": r.local_id,
                "title": r.title,
                "done": r.done,
                "total": r.total,
                "percent": r.percent,
            }
            for r in result.roots
        ],
        "content": render_progress(result),
    }


def planz_add(
    store: PlanStore,
    *,
    plan: str,
    path: str,
    description: str | None = None,
    parents: bool = False,
) -> dict[str, Any]:
    """Add a node at ``path``.

    Args:
        plan: Plan name.
        path: Slash-separated titles, e.g. "Phase 1/Task A" (max 4 levels).
        description: Optional description.
        parents: Create missing parent nodes instead of failing.
    """
    try:
        node = store.add(plan, path, description, parents=parents)
    except PlanzError as e:
        return _error(e)
    return {"added": _node_dict(node)}


def planz_remove(store: PlanStore, *, plan: str, node: str, force: bool = False) -> dict[str, Any]:
    try:
        removed = store.remove(plan, node, force=force)
    except PlanzError as e:
        return _error(e)
    return {"removed": removed}


def planz_rename(store: PlanStore, *, plan: str, node: str, title: str) -> dict[str, Any]:
    try:
        renamed = store.rename(plan, node, title)
    except PlanzError as e:
        return _error(e)
    return {"renamed": _node_dict(renamed)}


def planz_describe(store: PlanStore, *, plan: str, node: str, description: str) -> dict[str, Any]:
    try:
        described = store.describe(plan, node, description)
    except PlanzError as e:
        return _error(e)
    return {"described": _node_dict(described)}


def planz_move(
    store: PlanStore,
    *,
    plan: str,
    node: str,
    to: str | None = None,
    after: str | None = None,
) -> dict[str, Any]:
    """Move a node under ``to`` ("" for top level), or after sibling ``after``."""
    if (to is None) == (after is None):
        return {"error": "Give exactly one of 'to' or 'after'."}
    try:
        moved = store.move(plan, node, to=to, after=after)
    except PlanzError as e:
        return _error(e)
    return {"moved": _node_dict(moved)}


def planz_refine(store: PlanStore, *, plan: str, node: str, children: list[str]) -> dict[str, Any]:
    """Expand a leaf into a subtree; child paths that cannot be added are skipped."""
    if not children:
        return {"error": "No child paths given."}
    try:
        added = store.refine(plan, node, children)
    except PlanzError as e:
        return _error(e)
    return {"added": added, "requested": len(children)}


def planz_set_status(
    store: PlanStore, *, plan: str, nodes: list[str], done: bool
) -> dict[str, Any]:
    try:
        if done:
            marked = store.mark_done(plan, nodes)
        else:
            marked = store.mark_undone(plan, nodes)
    except PlanzError as e:
        return _error(e)
    return {"marked": marked, "requested": len(nodes), "done": done}


# --- Server lifecycle ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    store: PlanStore


def _resolve_paths() -> tuple[Path | None, str | None]:
    data_dir_env = os.environ.get("PLANZ_DATA_DIR")
    data_dir = Path(data_dir_env) if data_dir_env else None
    return data_dir, os.environ.get("PLANZ_PROJECT")


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the plan store on startup, close on shutdown."""
    data_dir, project = _resolve_paths()
    store = PlanStore.open(data_dir, project)
    logger.info("Serving plans for project {}", store.project)
    try:
        yield ServerContext(store=store)
    finally:
        store.close()


mcp_server = FastMCP(
    "planz",
    instructions="""\
planz stores hierarchical project plans: phases, tasks, subtasks and details,
at most 4 levels deep. Every tool works on one named plan of the server's
project.

## Addressing nodes
- By path: slash-separated titles from the top, e.g. "Phase 1/Task A".
- By id: "#5". Ids never change on rename or move, so prefer them once known.

## Status
- Marking a node done also marks its whole subtree done; a parent becomes done
  when all of its children are.
- Marking a node undone marks every ancestor undone.

## Tips
- Call planz_show_tool first to see the tree with ids.
- Use planz_refine_tool to break a leaf task into steps.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def planz_list_plans_tool(ctx: Context) -> dict[str, Any]:
    """List the plans of this project with summaries and node counts."""
    return planz_list_plans(_ctx(ctx).store)


@mcp_server.tool()
async def planz_show_tool(
    ctx: Context,
    plan: str,
    node: str | None = None,
    output_format: str = "json",
) -> dict[str, Any]:
    """Show a plan tree with ids, titles, descriptions and done flags.

    Args:
        plan: Plan name.
        node: Only show below this node (path or #id).
        output_format: "json" (nested structure) or "markdown" (checklist).
    """
    return planz_show(_ctx(ctx).store, plan=plan, node=node, output_format=output_format)


@mcp_server.tool()
async def planz_get_node_tool(ctx: Context, plan: str, node: str) -> dict[str, Any]:
    """Get one node and its direct children.

    Args:
        plan: Plan name.
        node: Path or #id.
    """
    return planz_get_node(_ctx(ctx).store, plan=plan, node=node)


@mcp_server.tool()
async def planz_progress_tool(ctx: Context, plan: str) -> dict[str, Any]:
    """Completion counts per top-level node and for the whole plan."""
    return planz_progress(_ctx(ctx).store, plan=plan)


@mcp_server.tool()
async def planz_add_tool(
    ctx: Context,
    plan: str,
    path: str,
    description: str | None = None,
    parents: bool = False,
) -> dict[str, Any]:
    """Add a node.

    Args:
        plan: Plan name.
        path: Slash-separated path of the new node, e.g. "Phase 1/Task A".
        description: Optional description.
        parents: Create missing parent nodes.
    """
    return planz_add(
        _ctx(ctx).store, plan=plan, path=path, description=description, parents=parents
    )


@mcp_server.tool()
async def planz_remove_tool(
    ctx: Context, plan: str, node: str, force: bool = False
) -> dict[str, Any]:
    """Remove a node. Nodes with children need force=True, which removes the subtree."""
    return planz_remove(_ctx(ctx).store, plan=plan, node=node, force=force)


@mcp_server.tool()
async def planz_rename_tool(ctx: Context, plan: str, node: str, title: str) -> dict[str, Any]:
    """Rename a node. Its #id stays the same."""
    return planz_rename(_ctx(ctx).store, plan=plan, node=node, title=title)


@mcp_server.tool()
async def planz_describe_tool(
    ctx: Context, plan: str, node: str, description: str
) -> dict[str, Any]:
    """Replace a node's description. An empty string clears it."""
    return planz_describe(_ctx(ctx).store, plan=plan, node=node, description=description)


@mcp_server.tool()
async def planz_move_tool(
    ctx: Context,
    plan: str,
    node: str,
    to: str | None = None,
    after: str | None = None,
) -> dict[str, Any]:
    """Move a node under a new parent, or after one of its siblings.

    Args:
        plan: Plan name.
        node: Node to move (path or #id).
        to: New parent (path or #id); "" moves it to the top level.
        after: Sibling (title, path or #id) to place the node after.
    """
    return planz_move(_ctx(ctx).store, plan=plan, node=node, to=to, after=after)


@mcp_server.tool()
async def planz_refine_tool(
    ctx: Context, plan: str, node: str, children: list[str]
) -> dict[str, Any]:
    """Break a leaf node into children.

    Args:
        plan: Plan name.
        node: Leaf node to refine (path or #id).
        children: Child paths relative to the node, e.g. ["Step 1", "Step 2/Detail"].
    """
    return planz_refine(_ctx(ctx).store, plan=plan, node=node, children=children)


@mcp_server.tool()
async def planz_done_tool(ctx: Context, plan: str, nodes: list[str]) -> dict[str, Any]:
    """Mark nodes done, with their subtrees. Unknown nodes are skipped."""
    return planz_set_status(_ctx(ctx).store, plan=plan, nodes=nodes, done=True)


@mcp_server.tool()
async def planz_undone_tool(ctx: Context, plan: str, nodes: list[str]) -> dict[str, Any]:
    """Mark nodes undone, with all their ancestors. Unknown nodes are skipped."""
    return planz_set_status(_ctx(ctx).store, plan=plan, nodes=nodes, done=False)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from planz.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
