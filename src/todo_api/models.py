from __future__ import annotations

from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoStatus(str, Enum):
    """Lifecycle state of a todo item."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A Todo item as returned by the repository.

    Fields:
    - id: Unique integer identifier assigned by the database
    - title: Short title (1..200 chars, stored exactly as sent)
    - description: Optional detailed description (0..1000 chars)
    - status: One of 'pending', 'in-progress', 'done'
    """

    id: int
    title: str
    description: Optional[str]
    status: str
