"""
Todo API package.

FastAPI service for todo items stored in an embedded SQLite database that is
kept in memory and snapshotted to a file after every change.

The application instance is importable as `todo_api.app`; use
`todo_api.create_app(settings)` to build one with explicit settings.
"""

from .main import app, create_app  # noqa: F401
