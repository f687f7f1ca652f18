"""Route registration for the voice todo service."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from voice_todo.router import router

# Import modules to register routes with the shared router.
from voice_todo import activity, tasks_api, webhook


def register_routes(app: FastAPI) -> None:
    """Attach the task, webhook and activity routes to the application."""
    app.include_router(router)
