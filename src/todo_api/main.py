from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import Database
from .errors import (
    DatabaseInitError,
    DatabaseSaveError,
    TodoNotFoundError,
    TodoValidationError,
    normalize_issues,
)
from .repositories import TodoRepository
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .snapshot import SnapshotManager

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD and title search for Todo items, with skip/limit pagination.",
    },
]


def _validation_response(issues: list) -> JSONResponse:
    """
    Consistent JSON structure for validation errors.

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [{"loc": [...], "msg": "...", "type": "..."}, ...]
        }
    """
    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(issues),
        },
    )


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _validation_response(normalize_issues(list(exc.errors())))

    @app.exception_handler(TodoValidationError)
    async def todo_validation_handler(request: Request, exc: TodoValidationError) -> JSONResponse:
        return _validation_response(exc.issues)

    @app.exception_handler(TodoNotFoundError)
    async def not_found_handler(request: Request, exc: TodoNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": "Todo not found"})

    @app.exception_handler(DatabaseInitError)
    async def init_error_handler(request: Request, exc: DatabaseInitError) -> JSONResponse:
        logger.error("%s %s: %s", request.method, request.url.path, exc, exc_info=exc.cause)
        return JSONResponse(
            status_code=500,
            content={"error": "DatabaseInitError", "message": exc.message},
        )

    @app.exception_handler(DatabaseSaveError)
    async def save_error_handler(request: Request, exc: DatabaseSaveError) -> JSONResponse:
        """
        The mutation is already applied in memory; the body says so and
        carries the applied result so clients can decide whether to retry.
        """
        logger.error("%s %s: %s", request.method, request.url.path, exc, exc_info=exc.cause)
        return JSONResponse(
            status_code=500,
            content={
                "error": "DatabaseSaveError",
                "message": exc.message,
                "applied": exc.applied,
                "result": jsonable_encoder(exc.result),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Only DEBUG deployments echo the exception message back to the client.
        """
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if settings.debug else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"error": "InternalServerError", "message": message},
        )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and its single storage handle.

    The Database is created here and shared by the snapshot manager and the
    repository; nothing else opens the engine. It is initialized lazily on
    the first request that touches storage.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    database = Database(settings.db_path)
    repository = TodoRepository(database, SnapshotManager(database))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Todo API started (storage: %s)",
            "in-memory only" if database.is_ephemeral else database.path,
        )
        yield
        database.close()
        logger.info("Todo API stopped")

    app = FastAPI(
        title="Todo API",
        description="CRUD and search over todo items, stored in an embedded SQLite database snapshotted to disk.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repository

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_exception_handlers(app, settings)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Welcome", tags=["health"])
    def root():
        """
        Welcome endpoint.

        Returns:
            A JSON object with a welcome message and whether todos are persisted to disk.
        """
        return {"message": "Welcome to the Todo API", "persistent": not settings.is_ephemeral}

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"status": "ok"}

    app.include_router(todos_router.router)
    return app


app = create_app()
