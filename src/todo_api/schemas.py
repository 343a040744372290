from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TodoStatus

TITLE_MAX = 200
DESCRIPTION_MAX = 1000
QUERY_MAX = 200
LIMIT_MAX = 100


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Refactor authentication module",
                "description": "Extract JWT logic into a dedicated service",
                "status": "in-progress",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=TITLE_MAX)
    description: Optional[str] = Field(
        default=None, description="Optional detailed description", max_length=DESCRIPTION_MAX
    )
    status: TodoStatus = Field(default=TodoStatus.PENDING, description="Lifecycle status")


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.
    An explicit null clears `description`; it is rejected for `title` and `status`.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy organic groceries",
                "description": None,
                "status": "done",
            }
        }
    )

    title: Optional[str] = Field(
        default=None, description="Short title for the todo item", min_length=1, max_length=TITLE_MAX
    )
    description: Optional[str] = Field(
        default=None, description="Detailed description; null clears it", max_length=DESCRIPTION_MAX
    )
    status: Optional[TodoStatus] = Field(default=None, description="Lifecycle status")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        # Only runs for values present in the input, so None here was sent explicitly.
        if v is None:
            raise ValueError("title cannot be null")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[TodoStatus]) -> TodoStatus:
        if v is None:
            raise ValueError("status cannot be null")
        return v


# PUBLIC_INTERFACE
class ListParams(BaseModel):
    """Pagination parameters for listing todos."""

    skip: int = Field(default=0, ge=0, description="Number of items to skip")
    limit: int = Field(default=10, ge=1, le=LIMIT_MAX, description="Maximum number of items to return")


# PUBLIC_INTERFACE
class SearchParams(BaseModel):
    """Title search parameters."""

    q: str = Field(..., min_length=1, max_length=QUERY_MAX, description="Text searched for in titles")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 42,
                "title": "Buy groceries",
                "description": "Oat milk, eggs",
                "status": "pending",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: TodoStatus = Field(..., description="Lifecycle status")


# PUBLIC_INTERFACE
class DeleteConfirmation(BaseModel):
    """Body returned after a successful delete."""

    detail: str = Field(default="Todo deleted", description="Confirmation message")
