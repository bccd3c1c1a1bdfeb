"""CLI for planz: hierarchical project plans with cascading status."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from planz.core.tree.render import (
    render_json,
    render_markdown,
    render_progress,
    render_text,
    render_xml,
)
from planz.errors import PlanzError
from planz.logging_config import configure_logging
from planz.service import PlanStore

app = typer.Typer(
    help=(
        "Hierarchical project plans. Paths are slash-separated titles, e.g. "
        "'Phase 1/Task A' (max 4 levels); nodes can also be named by '#<id>'."
    ),
    no_args_is_help=True,
)

ProjectOpt = Annotated[
    Path | None,
    typer.Option("--project", "-p", help="Project directory (default: current directory)"),
]
DataDirOpt = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Plan store directory (default: $PLANZ_DATA_DIR)"),
]
PlanArg = Annotated[str, typer.Argument(help="Plan name")]
NodeArg = Annotated[str, typer.Argument(help="Node path or #id")]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _open_store(project: Path | None, data_dir: Path | None) -> Iterator[PlanStore]:
    """Open the store; report any planz error on stderr and exit with its code."""
    try:
        with PlanStore.open(data_dir, project) as store:
            yield store
    except PlanzError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(e.exit_code) from e


# --- Plans ---


@app.command()
def create(name: PlanArg, project: ProjectOpt = None, data_dir: DataDirOpt = None) -> None:
    """Create a new plan."""
    with _open_store(project, data_dir) as store:
        store.create_plan(name)
    typer.echo(f"Created plan '{name}'")


@app.command()
def delete(name: PlanArg, project: ProjectOpt = None, data_dir: DataDirOpt = None) -> None:
    """Delete a plan and all its nodes."""
    with _open_store(project, data_dir) as store:
        store.delete_plan(name)
    typer.echo(f"Deleted plan '{name}'")


@app.command(name="rename-plan")
def rename_plan(
    old_name: PlanArg,
    new_name: Annotated[str, typer.Argument(help="New plan name")],
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Rename a plan."""
    with _open_store(project, data_dir) as store:
        store.rename_plan(old_name, new_name)
    typer.echo(f"Renamed plan '{old_name}' to '{new_name}'")


@app.command(name="list")
def list_cmd(project: ProjectOpt = None, data_dir: DataDirOpt = None) -> None:
    """List the plans of a project, most recently updated first."""
    with _open_store(project, data_dir) as store:
        plans = store.list_plans()
        if not plans:
            typer.echo(f"No plans found for project: {store.project}")
            return
        typer.echo(f"Plans for: {store.project}\n")
        typer.echo(f"{'NAME':<20} {'NODES':<8} {'CREATED':<20} {'UPDATED':<20} SUMMARY")
        typer.echo("-" * 100)
        for plan in plans:
            typer.echo(
                f"{plan.name:<20} {plan.node_count:<8} {plan.created_at:<20} "
                f"{plan.updated_at:<20} {plan.summary[:30]}"
            )


@app.command()
def projects(data_dir: DataDirOpt = None) -> None:
    """List every project that has plans."""
    with _open_store(None, data_dir) as store:
        rows = store.list_projects()
    typer.echo(f"{'PROJECT':<50} {'PLANS':<8} LAST UPDATED")
    typer.echo("-" * 80)
    for row in rows:
        typer.echo(f"{row.path:<50} {row.plan_count:<8} {row.last_updated or 'never'}")


@app.command(name="delete-project")
def delete_project(project: ProjectOpt = None, data_dir: DataDirOpt = None) -> None:
    """Delete a project with all of its plans."""
    with _open_store(project, data_dir) as store:
        deleted = store.delete_project()
        path = store.project
    if deleted:
        typer.echo(f"Deleted project and all plans: {path}")
    else:
        typer.echo(f"No project found: {path}")


@app.command()
def summarize(
    name: PlanArg,
    summary: str = typer.Option(..., "--summary", "-s", help="New plan summary"),
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Set a plan's summary."""
    with _open_store(project, data_dir) as store:
        store.summarize(name, summary)
    typer.echo(f"Updated summary for '{name}'")


# --- Nodes ---


@app.command()
def add(
    plan: PlanArg,
    path: Annotated[str, typer.Argument(help="Slash-separated path of the new node")],
    desc: Annotated[str | None, typer.Option("--desc", help="Node description")] = None,
    parents: bool = typer.Option(False, "--parents", help="Create missing parent nodes"),
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Add a node."""
    with _open_store(project, data_dir) as store:
        node = store.add(plan, path, desc, parents=parents)
    typer.echo(f"Added '{path}' [{node.local_id}]")


@app.command()
def remove(
    plan: PlanArg,
    node: NodeArg,
    force: bool = typer.Option(False, "--force", "-f", help="Also remove all descendants"),
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Remove a node."""
    with _open_store(project, data_dir) as store:
        removed = store.remove(plan, node, force=force)
    typer.echo(f"Removed '{node}' ({removed} node(s))")


@app.command()
def rename(
    plan: PlanArg,
    node: NodeArg,
    new_title: Annotated[str, typer.Argument(help="New title")],
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Rename a node. Its #id is unchanged."""
    with _open_store(project, data_dir) as store:
        store.rename(plan, node, new_title)
    typer.echo(f"Renamed to '{new_title}'")


@app.command()
def describe(
    plan: PlanArg,
    node: NodeArg,
    desc: str = typer.Option(..., "--desc", help="New description ('' clears it)"),
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Replace a node's description."""
    with _open_store(project, data_dir) as store:
        store.describe(plan, node, desc)
    typer.echo(f"Updated description for '{node}'")


@app.command()
def move(
    plan: PlanArg,
    node: NodeArg,
    to: Annotated[
        str | None,
        typer.Option("--to", help="New parent path or #id ('' moves to the top level)"),
    ] = None,
    after: Annotated[
        str | None,
        typer.Option("--after", help="Sibling to place the node after"),
    ] = None,
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Move a node under a new parent, or after one of its siblings."""
    if (to is None) == (after is None):
        msg = "move requires exactly one of --to or --after"
        raise typer.BadParameter(msg)
    with _open_store(project, data_dir) as store:
        store.move(plan, node, to=to, after=after)
    typer.echo(f"Moved '{node}'")


@app.command()
def refine(
    plan: PlanArg,
    node: NodeArg,
    add: Annotated[
        list[str],
        typer.Option("--add", "-a", help="Child path relative to the node (repeatable)"),
    ],
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Expand a leaf node into a subtree."""
    with _open_store(project, data_dir) as store:
        added = store.refine(plan, node, add)
    typer.echo(f"Refined '{node}' with {added} node(s)")


@app.command()
def done(
    plan: PlanArg,
    nodes: Annotated[list[str], typer.Argument(help="Node paths or #ids")],
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Mark nodes done, with their whole subtrees."""
    with _open_store(project, data_dir) as store:
        marked = store.mark_done(plan, nodes)
    typer.echo(f"Marked {marked} item(s) as done")


@app.command()
def undone(
    plan: PlanArg,
    nodes: Annotated[list[str], typer.Argument(help="Node paths or #ids")],
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Mark nodes undone, with all their ancestors."""
    with _open_store(project, data_dir) as store:
        marked = store.mark_undone(plan, nodes)
    typer.echo(f"Marked {marked} item(s) as undone")


# --- Views ---


@app.command()
def show(
    plan: PlanArg,
    node: Annotated[str | None, typer.Argument(help="Only show below this node")] = None,
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    output_xml: bool = typer.Option(False, "--xml", help="Output as XML"),
    output_md: bool = typer.Option(False, "--md", help="Output as markdown"),
    project: ProjectOpt = None,
    data_dir: DataDirOpt = None,
) -> None:
    """Show a plan tree."""
    if output_json + output_xml + output_md > 1:
        msg = "choose at most one of --json, --xml, --md"
        raise typer.BadParameter(msg)
    with _open_store(project, data_dir) as store:
        tree = store.show(plan, node)
    if output_json:
        typer.echo(render_json(tree))
    elif output_xml:
        typer.echo(render_xml(plan, tree), nl=False)
    elif output_md:
        typer.echo(render_markdown(plan, tree), nl=False)
    else:
        typer.echo(render_text(plan, tree), nl=False)


@app.command()
def progress(plan: PlanArg, project: ProjectOpt = None, data_dir: DataDirOpt = None) -> None:
    """Show completion per top-level node."""
    with _open_store(project, data_dir) as store:
        result = store.progress(plan)
    typer.echo(render_progress(result), nl=False)


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from planz.mcp.server import run_mcp_server

    run_mcp_server()

