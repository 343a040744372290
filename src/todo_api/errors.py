"""
Error taxonomy shared by the storage layer, the todo repository and the
HTTP exception handlers.

- DatabaseInitError: the embedded database could not be created or loaded.
- DatabaseSaveError: a snapshot write failed. The mutation that triggered it
  has already been applied in memory and is not rolled back.
- TodoValidationError: input rejected before touching storage.
- TodoNotFoundError: an id-addressed operation referenced a missing todo.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

ValidationIssue = Dict[str, Any]


class DatabaseError(Exception):
    """Base class for storage failures. The original error is kept as `cause`."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        detail = f"{message}: {cause}" if cause is not None else message
        super().__init__(detail)
        self.message = message
        self.cause = cause


# PUBLIC_INTERFACE
class DatabaseInitError(DatabaseError):
    """Raised when loading the snapshot or creating the schema fails."""

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__("database initialization failed", cause)


# PUBLIC_INTERFACE
class DatabaseSaveError(DatabaseError):
    """
    Raised when writing the snapshot fails.

    The in-memory change is kept. When raised from a repository mutation,
    `result` holds what the mutation produced (the record, or None for a
    delete) and `applied` is True, meaning "applied but not durable".
    """

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__("database save failed", cause)
        self.applied = False
        self.result: Any = None


# PUBLIC_INTERFACE
class TodoValidationError(Exception):
    """Input failed validation. `issues` is a field-addressable list."""

    def __init__(self, issues: List[ValidationIssue]) -> None:
        super().__init__("Request validation failed")
        self.issues = issues

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "TodoValidationError":
        return cls(normalize_issues(exc.errors()))


# PUBLIC_INTERFACE
class TodoNotFoundError(Exception):
    """No todo exists with the requested id."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"Todo {todo_id} not found")
        self.todo_id = todo_id


def normalize_issues(errors: List[Dict[str, Any]]) -> List[ValidationIssue]:
    """
    Reduce pydantic/FastAPI error dicts to JSON-safe {loc, msg, type} entries.

    pydantic includes the rejected input and a `ctx` that may hold exception
    objects; neither is returned to clients.
    """
    return [
        {
            "loc": list(err.get("loc", ())),
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in errors
    ]
