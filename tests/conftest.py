from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

os.environ.setdefault("DB_PATH", ":memory-test:")

from todo_api.db import Database  # noqa: E402
from todo_api.repositories import TodoRepository  # noqa: E402
from todo_api.snapshot import SnapshotManager  # noqa: E402

RepoFactory = Callable[[str], TodoRepository]


def build_repository(path: str) -> TodoRepository:
    database = Database(path)
    return TodoRepository(database, SnapshotManager(database))


@pytest.fixture()
def make_repo() -> RepoFactory:
    return build_repository


@pytest.fixture()
def repo() -> TodoRepository:
    return build_repository(":memory-test:")


@pytest.fixture()
def db_file(tmp_path: Path) -> Path:
    return tmp_path / "todo.db"
