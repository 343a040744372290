from __future__ import annotations

import logging
from typing import Any, List, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .db import COLS, Database
from .errors import DatabaseSaveError, TodoNotFoundError, TodoValidationError
from .models import TodoEntity
from .schemas import ListParams, SearchParams, TodoCreate, TodoUpdate
from .snapshot import SnapshotManager
from .utils import Record, to_record, to_records

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1

_SELECT_BY_ID =f"SELECT * FROM {COLS.table} WHERE {COLS.id} = ?"


def _validate(model: Type[M], data: Any) -> M:
    """Validate raw input against a schema, raising TodoValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise TodoValidationError.from_pydantic(exc) from None


def _to_entity(record: Record) -> TodoEntity:
    return {
        "id": int(record[COLS.id]),
        "title": str(record[COLS.title]),
        "description": record[COLS.description],
        "status": str(record[COLS.status]),
    }


# PUBLIC_INTERFACE
class TodoRepository:
    """
    Todo operations on top of the storage handle.

    Input is validated before any statement runs. Every mutation holds the
    database lock across "check + write + snapshot" so snapshot writes never
    interleave. A failed snapshot does not undo the mutation: the raised
    DatabaseSaveError carries the applied result.
    """

    def __init__(self, database: Database, snapshots: SnapshotManager) -> None:
        self._db = database
        self._snapshots = snapshots

    def _fetch(self, todo_id: int) -> Optional[TodoEntity]:
        # SQLite integers are signed 64-bit; larger ids cannot be bound and match nothing.
        if not (SQLITE_INT_MIN <= todo_id <= SQLITE_INT_MAX):
            return None
        record =to_record(self._db.query(_SELECT_BY_ID, (todo_id,)))
        return None if record is None else _to_entity(record)

    def _require(self, todo_id: int) -> TodoEntity:
        item = self._fetch(todo_id)
        if item is None:
            raise TodoNotFoundError(todo_id)
        return item

    def _persist(self, result: Any) -> None:
        try:
            self._snapshots.persist()
        except DatabaseSaveError as exc:
            exc.applied = True
            exc.result = result
            raise

    def create(self, data: Any) -> TodoEntity:
        """Insert a todo and return it with its assigned id."""
        payload = _validate(TodoCreate, data)
        with self._db.lock:
            res = self._db.execute(
                f"INSERT INTO {COLS.table} ({COLS.title}, {COLS.description}, {COLS.status}) "
                "VALUES (?, ?, ?)",
                (payload.title, payload.description, payload.status.value),
            )
            assert res.lastrowid is not None
            created = self._require(res.lastrowid)
            logger.info("Created todo %d", created["id"])
            self._persist(created)
        return created

    def get(self, todo_id: int) -> TodoEntity:
        """Return the todo with this id or raise TodoNotFoundError."""
        return self._require(todo_id)

    def list(self, params: Any = None) -> List[TodoEntity]:
        """Return one page of todos in insertion order."""
        q = _validate(ListParams, params if params is not None else {})
        result = self._db.query(
            f"SELECT * FROM {COLS.table} ORDER BY {COLS.id} LIMIT ? OFFSET ?",
            (q.limit, q.skip),
        )
        return [_to_entity(r) for r in to_records(result)]

    def search(self, params: Any) -> List[TodoEntity]:
        """
        Case-insensitive substring match on titles, in insertion order.
        An empty list means no match.
        """
        q = _validate(SearchParams, params)
        # instr() keeps '%' and '_' literal; lower() folds ASCII only.
        result = self._db.query(
            f"SELECT * FROM {COLS.table} WHERE instr(lower({COLS.title}), lower(?)) > 0 "
            f"ORDER BY {COLS.id}",
            (q.q,),
        )
        return [_to_entity(r) for r in to_records(result)]

    def update(self, todo_id: int, data: Any) -> TodoEntity:
        """
        Partially update a todo.

        Existence is checked before the body is validated. Fields absent from
        the input keep their value; `description: null` clears the description.
        """
        with self._db.lock:
            current = self._require(todo_id)
            payload = _validate(TodoUpdate, data)
            provided = payload.model_fields_set
            if not provided:
                return current

            title = payload.title if "title" in provided else current["title"]
            description = payload.description if "description" in provided else current["description"]
            status = payload.status.value if "status" in provided and payload.status else current["status"]

            self._db.execute(
                f"UPDATE {COLS.table} SET {COLS.title} = ?, {COLS.description} = ?, {COLS.status} = ? "
                f"WHERE {COLS.id} = ?",
                (title, description, status, todo_id),
            )
            updated = self._require(todo_id)
            logger.info("Updated todo %d (%s)", todo_id, ", ".join(sorted(provided)))
            self._persist(updated)
        return updated

    def delete(self, todo_id: int) -> None:
        """Permanently remove a todo."""
        with self._db.lock:
            self._require(todo_id)
            res = self._db.execute(f"DELETE FROM {COLS.table} WHERE {COLS.id} = ?", (todo_id,))
            if res.rowcount == 0:
                raise TodoNotFoundError(todo_id)
            logger.info("Deleted todo %d", todo_id)
            self._persist(None)


# PUBLIC_INTERFACE
def get_repository(request: Request) -> TodoRepository:
    """FastAPI dependency returning the repository built by the application factory."""
    return request.app.state.repository
