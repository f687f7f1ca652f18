"""Request-scoped access to the objects created at application startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from voice_todo.errors import TodoError

if TYPE_CHECKING:
    from voice_todo.engine import TodoManager
    from voice_todo.intents import IntentParser

SERVICE_TOKEN_HEADER = "X-Voice-Todo-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}


def get_todo_manager(request: Request) -> "TodoManager":
    manager = getattr(request.app.state, "todo_manager", None)
    if manager is None:
        raise TodoError(
            "NOT_READY",
            "Task manager is not configured.",
            {},
        )
    return manager


def get_intent_parser(request: Request) -> "IntentParser":
    parser = getattr(request.app.state, "intent_parser", None)
    if parser is None:
        raise TodoError(
            "NOT_READY",
            "Intent parser is not configured.",
            {},
        )
    return parser
