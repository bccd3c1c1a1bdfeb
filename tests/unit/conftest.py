"""Shared test fixtures."""

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from planz.core.database.connection import connect
from planz.core.plans.registry import create_plan
from planz.service import PlanStore

PROJECT = "/work/project"


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def conn(data_dir: Path) -> Iterator[sqlite3.Connection]:
    """An open store connection in autocommit mode, for engine-level tests."""
    with connect(data_dir) as c:
        yield c


@pytest.fixture
def plan_id(conn: sqlite3.Connection) -> int:
    return create_plan(conn, PROJECT, "p")


@pytest.fixture
def store(data_dir: Path) -> Iterator[PlanStore]:
    """A PlanStore over a temp-dir database with plan ``p`` created."""
    s = PlanStore.open(data_dir, PROJECT)
    s.create_plan("p")
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def warnings_log() -> Iterator[list[str]]:
    """Collect loguru warnings emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)

