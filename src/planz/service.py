"""PlanStore: the operations front ends call, one guarded transaction per mutation."""

import sqlite3
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from loguru import logger

from planz.config import resolve_data_dir, resolve_project
from planz.core.database import queries
from planz.core.database.connection import open_connection, store_paths
from planz.core.database.guard import write_transaction
from planz.core.plans import registry
from planz.core.tree import cascade, mutations, navigation
from planz.core.tree.paths import resolve_node
from planz.errors import StoreError
from planz.models.node import Node, PlanProgress, PlanSummary, ProjectSummary, TreeNode

T = TypeVar("T")


class PlanStore:
    """A plan store scoped to one project.

    Mutations take the external write lock and run in a single immediate
    transaction; reads go straight to the connection.
    """

    def __init__(self, conn: sqlite3.Connection, *, lock_path: Path, project: str) -> None:
        self.conn = conn
        self.lock_path = lock_path
        self.project = project

    @classmethod
    def open(
        cls, data_dir: Path | None = None, project: Path | str | None = None
    ) -> "PlanStore":
        """Open the store in ``data_dir`` (see ``resolve_data_dir``) for ``project``."""
        directory = resolve_data_dir(data_dir)
        _, lock_path = store_paths(directory)
        conn = open_connection(directory)
        return cls(conn, lock_path=lock_path, project=resolve_project(project))

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "PlanStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        """Run unguarded reads; SQLite failures surface as ``StoreError``."""
        try:
            yield self.conn
        except sqlite3.Error as e:
            msg = f"Failed to read plan store: {e}"
            raise StoreError(msg) from e

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        with write_transaction(self.conn, self.lock_path) as conn:
            yield conn

    def _edit_plan(self, plan: str, edit: Callable[[sqlite3.Connection, int], T]) -> T:
        """Run ``edit(conn, plan_id)`` under the write guard and touch the plan."""
        with self._write() as conn:
            plan_id = registry.get_plan_id(conn, self.project, plan)
            result = edit(conn, plan_id)
            queries.touch_plan(conn, plan_id)
        return result

    # --- Plans and projects ---

    def create_plan(self, name: str) -> None:
        with self._write() as conn:
            registry.create_plan(conn, self.project, name)

    def delete_plan(self, name: str) -> None:
        with self._write() as conn:
            registry.delete_plan(conn, self.project, name)

    def rename_plan(self, old_name: str, new_name: str) -> None:
        with self._write() as conn:
            registry.rename_plan(conn, self.project, old_name, new_name)

    def summarize(self, name: str, summary: str) -> None:
        with self._write() as conn:
            registry.summarize_plan(conn, self.project, name, summary)

    def list_plans(self) -> list[PlanSummary]:
        with self._read() as conn:
            return registry.list_plans(conn, self.project)

    def list_projects(self) -> list[ProjectSummary]:
        with self._read() as conn:
            return registry.list_projects(conn)

    def delete_project(self, project: Path | str | None = None) -> bool:
        """Delete a project (this store's by default) with all its plans."""
        path = resolve_project(project) if project is not None else self.project
        with self._write() as conn:
            deleted = registry.delete_project(conn, path)
        if deleted:
            logger.debug("Deleted project {}", path)
        return deleted

    # --- Nodes ---

    def add(
        self, plan: str, path: str, description: str | None = None, *, parents: bool = False
    ) -> Node:
        return self._edit_plan(
            plan,
            lambda conn, plan_id: mutations.add_node(
                conn, plan_id, path, description, parents=parents
            ),
        )

    def remove(self, plan: str, identifier: str, *, force: bool = False) -> int:
        return self._edit_plan(
            plan,
            lambda conn, plan_id: mutations.remove_node(conn, plan_id, identifier, force=force),
        )

    def rename(self, plan: str, identifier: str, new_title: str) -> Node:
        return self._edit_plan(
            plan, lambda conn, plan_id: mutations.rename_node(conn, plan_id, identifier, new_title)
        )

    def describe(self, plan: str, identifier: str, description: str) -> Node:
        return self._edit_plan(
            plan,
            lambda conn, plan_id: mutations.describe_node(conn, plan_id, identifier, description),
        )

    def move(
        self, plan: str, identifier: str, *, to: str | None = None, after: str | None = None
    ) -> Node:
        return self._edit_plan(
            plan,
            lambda conn, plan_id: mutations.move_node(
                conn, plan_id, identifier, to=to, after=after
            ),
        )

    def refine(self, plan: str, identifier: str, children: list[str]) -> int:
        return self._edit_plan(
            plan,
            lambda conn, plan_id: mutations.refine_node(conn, plan_id, identifier, children),
        )

    def mark_done(self, plan: str, identifiers: Iterable[str]) -> int:
        return self._edit_plan(
            plan, lambda conn, plan_id: cascade.set_status(conn, plan_id, identifiers, done=True)
        )

    def mark_undone(self, plan: str, identifiers: Iterable[str]) -> int:
        return self._edit_plan(
            plan, lambda conn, plan_id: cascade.set_status(conn, plan_id, identifiers, done=False)
        )

    # --- Reads ---

    def get_node(self, plan: str, identifier: str) -> Node:
        with self._read() as conn:
            plan_id = registry.get_plan_id(conn, self.project, plan)
            return queries.get_node(conn, resolve_node(conn, plan_id, identifier))

    def children(self, plan: str, identifier: str | None = None) -> tuple[Node, ...]:
        """Direct children of ``identifier``, or the plan's roots."""
        with self._read() as conn:
            plan_id = registry.get_plan_id(conn, self.project, plan)
            parent_id = resolve_node(conn, plan_id, identifier) if identifier else None
            return navigation.get_children(conn, plan_id=plan_id, parent_id=parent_id)

    def show(self, plan: str, identifier: str | None = None) -> tuple[TreeNode, ...]:
        """Ordered subtree below ``identifier``, or the whole plan."""
        with self._read() as conn:
            plan_id = registry.get_plan_id(conn, self.project, plan)
            root_id = resolve_node(conn, plan_id, identifier) if identifier else None
            return navigation.get_subtree(conn, plan_id=plan_id, root_id=root_id)

    def progress(self, plan: str) -> PlanProgress:
        with self._read() as conn:
            plan_id = registry.get_plan_id(conn, self.project, plan)
            return navigation.plan_progress(conn, plan_id=plan_id, name=plan)
