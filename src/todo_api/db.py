from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, List, Optional, Sequence, Tuple

from .errors import DatabaseInitError
from .settings import EPHEMERAL_PREFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    status: str = "status"


COLS = _Cols()

_SCHEMA = f"""
    CREATE TABLE IF NOT EXISTS {COLS.table} (
        {COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
        {COLS.title} TEXT NOT NULL,
        {COLS.description} TEXT,
        {COLS.status} TEXT DEFAULT 'pending'
    )
"""


@dataclass(frozen=True)
class ResultSet:
    """Generic tabular result: column names plus positional value rows."""

    columns: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a write statement."""

    lastrowid: Optional[int]
    rowcount: int


# PUBLIC_INTERFACE
class Database:
    """
    Handle owning the one live in-memory SQLite engine.

    The engine is created on the first `acquire()`: loaded from the snapshot
    file when one exists, empty otherwise, and the todos table is created if
    absent. Paths starting with ':' never touch the filesystem.

    All access is serialized through `lock` (re-entrant, so callers may hold
    it across several primitives, e.g. "write + snapshot").
    """

    def __init__(self, path: str) -> None:
        self._ephemeral = path.startswith(EPHEMERAL_PREFIX)
        self._path = None if self._ephemeral else os.path.abspath(path)
        self._conn: Optional[sqlite3.Connection] = None
        self.lock = RLock()

    @property
    def path(self) -> Optional[str]:
        """Snapshot file path, None when ephemeral."""
        return self._path

    @property
    def is_ephemeral(self) -> bool:
        return self._ephemeral

    @property
    def initialized(self) -> bool:
        return self._conn is not None

    def acquire(self) -> sqlite3.Connection:
        """Return the live engine, creating it on first use."""
        with self.lock:
            if self._conn is None:
                self._conn = self._open()
            return self._conn

    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: autocommit, so serialize() always sees
        # completed statements.
        conn = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
        try:
            if self._path is not None and os.path.exists(self._path):
                with open(self._path, "rb") as fh:
                    data = fh.read()
                if data:
                    conn.deserialize(data)
                logger.info("Loaded database snapshot from %s (%d bytes)", self._path, len(data))
            else:
                logger.info(
                    "Initialized empty database (%s)",
                    "in-memory only" if self._ephemeral else self._path,
                )
            conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            conn.close()
            logger.error("Database initialization failed: %s", exc)
            raise DatabaseInitError(exc) from exc
        return conn

    def query(self, sql: str, params: Sequence[Any] = ()) -> ResultSet:
        """Run a read statement and return its rows as a ResultSet."""
        with self.lock:
            cur = self.acquire().execute(sql, params)
            columns = [d[0] for d in cur.description or ()]
            rows = cur.fetchall()
        return ResultSet(columns=columns, rows=rows)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecResult:
        """Run a write statement."""
        with self.lock:
            cur = self.acquire().execute(sql, params)
            return ExecResult(lastrowid=cur.lastrowid, rowcount=cur.rowcount)

    def export(self) -> Optional[bytes]:
        """Serialize the whole engine, or None if it was never initialized."""
        with self.lock:
            if self._conn is None:
                return None
            return self._conn.serialize()

    def close(self) -> None:
        with self.lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
