from __future__ import annotations

from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from ..repositories import TodoRepository, get_repository
from ..schemas import LIMIT_MAX, QUERY_MAX, DeleteConfirmation, ListParams, SearchParams, TodoOut

router = APIRouter(
    prefix="/todos",
    tags=["todos"],
)

_VALIDATION = {400: {"description": "Validation error"}}
_NOT_FOUND = {404: {"description": "Todo not found"}}


def _get_repo(repo: TodoRepository = Depends(get_repository)) -> TodoRepository:
    """
    Dependency wrapper for repository to keep signatures clean.
    """
    return repo


def _search_enabled(request: Request) -> None:
    """
    Hide the search endpoint when FEATURE_TODO_SEARCH is off.
    """
    if not request.app.state.settings.feature_todo_search:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description=(
        "Create a new Todo item and return it with its generated id. "
        "Only `title` is required; `description` defaults to null and `status` to `pending`."
    ),
    responses={201: {"description": "Todo created successfully"}, **_VALIDATION},
)
def create_todo(
    payload: Any = Body(None, examples=[{"title": "Read a book"}]),
    repo: TodoRepository = Depends(_get_repo),
) -> TodoOut:
    """
    Create a new Todo.
    """
    created = repo.create(payload)
    return TodoOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description=(
        "List todos in insertion order.\n\n"
        "Query parameters:\n"
        "- skip: number of items to skip (>=0, default 0)\n"
        f"- limit: max number of items to return (1..{LIMIT_MAX}, default 10)\n\n"
        "Returns an empty array past the last page."
    ),
    responses={200: {"description": "List retrieved successfully"}, **_VALIDATION},
)
def list_todos(
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(10, ge=1, le=LIMIT_MAX, description="Maximum number of items to return"),
    repo: TodoRepository = Depends(_get_repo),
) -> List[TodoOut]:
    """
    List todos with pagination.
    """
    items = repo.list(ListParams(skip=skip, limit=limit))
    return [TodoOut(**it) for it in items]  # type: ignore[arg-type]


# Declared before /{todo_id} so "search" is not parsed as an id.
# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=List[TodoOut],
    summary="Search Todos",
    description=(
        "Case-insensitive substring search on titles. "
        "Returns an empty array when nothing matches, never 404."
    ),
    responses={200: {"description": "Matching todos"}, **_VALIDATION},
    dependencies=[Depends(_search_enabled)],
)
def search_todos(
    q: str = Query(..., min_length=1, max_length=QUERY_MAX, description="Text searched for in titles"),
    repo: TodoRepository = Depends(_get_repo),
) -> List[TodoOut]:
    """
    Search todos by title.
    """
    items = repo.search(SearchParams(q=q))
    return [TodoOut(**it) for it in items]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={200: {"description": "Todo found"}, **_NOT_FOUND},
)
def get_todo(todo_id: int, repo: TodoRepository = Depends(_get_repo)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**repo.get(todo_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description=(
        "Partially update a Todo item. Omitted fields keep their value; "
        "`\"description\": null` clears the description. "
        "A missing id is reported as 404 before the body is validated."
    ),
    responses={200: {"description": "Todo updated"}, **_VALIDATION, **_NOT_FOUND},
)
@router.patch(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Patch Todo",
    description="Same partial-update semantics as PUT.",
    responses={200: {"description": "Todo updated"}, **_VALIDATION, **_NOT_FOUND},
)
def update_todo(
    todo_id: int,
    payload: Any = Body(None, examples=[{"status": "done"}, {"description": None}]),
    repo: TodoRepository = Depends(_get_repo),
) -> TodoOut:
    """
    Partial update of a Todo item.
    """
    updated = repo.update(todo_id, payload)
    return TodoOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=DeleteConfirmation,
    summary="Delete Todo",
    description="Permanently delete a Todo item by ID.",
    responses={200: {"description": "Todo deleted"}, **_NOT_FOUND},
)
def delete_todo(todo_id: int, repo: TodoRepository = Depends(_get_repo)) -> DeleteConfirmation:
    """
    Delete a Todo. Returns a confirmation, 404 if not found.
    """
    repo.delete(todo_id)
    return DeleteConfirmation()
