"""Task endpoints used by the desktop shell and other local callers."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from voice_todo.engine import LIST_FILTERS
from voice_todo.errors import TodoError, success_response
from voice_todo.payload import read_string_fields
from voice_todo.router import router
from voice_todo.state import get_todo_manager
from voice_todo.tool_schemas import ToolSchemaError, load_tool_definitions


@router.get("/tasks")
def list_active_tasks(request: Request) -> dict[str, Any]:
    """Return every active task with its display id."""
    manager = get_todo_manager(request)
    return success_response({"tasks": manager.get_active_tasks()})


@router.get("/tasks/priority")
def list_priority_tasks(request: Request, count: int = 5) -> dict[str, Any]:
    """Return the most urgent-sounding tasks first."""
    if count < 1:
        raise TodoError(
            "INVALID_TYPE",
            "count must be a positive integer.",
            {"count": str(count)},
        )
    manager = get_todo_manager(request)
    return success_response({"tasks": manager.get_priority_tasks(count)})


@router.get("/stats")
def task_stats(request: Request) -> dict[str, Any]:
    manager = get_todo_manager(request)
    return success_response(manager.get_stats())


@router.get("/tools")
def list_tool_schemas() -> dict[str, Any]:
    """Return the function definitions offered to the intent model."""
    try:
        tools = load_tool_definitions()
    except ToolSchemaError as exc:
        raise TodoError(
            "TOOL_SCHEMA_ERROR",
            "Tool definitions could not be loaded.",
            {"error": str(exc)},
        ) from exc
    return success_response({"tools": tools})


@router.post("/tasks:add_task")
def add_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Add a task with an optional priority and deadline."""
    fields = read_string_fields(payload, ["task"], ["priority", "deadline"])
    manager = get_todo_manager(request)
    result = manager.add_task(
        fields["task"], fields["priority"] or "normal", fields["deadline"]
    )
    return success_response(result.to_dict())


@router.post("/tasks:mark_complete")
def mark_complete(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["taskQuery"])
    manager = get_todo_manager(request)
    return success_response(manager.mark_complete(fields["taskQuery"]).to_dict())


@router.post("/tasks:update_task")
def update_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["taskQuery", "newText"])
    manager = get_todo_manager(request)
    result = manager.update_task(fields["taskQuery"], fields["newText"])
    return success_response(result.to_dict())


@router.post("/tasks:delete_task")
def delete_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["taskQuery"])
    manager = get_todo_manager(request)
    return success_response(manager.delete_task(fields["taskQuery"]).to_dict())


@router.post("/tasks:add_deadline")
def add_deadline(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["taskQuery", "deadline"])
    manager = get_todo_manager(request)
    result = manager.add_deadline(fields["taskQuery"], fields["deadline"])
    return success_response(result.to_dict())


@router.post("/tasks:set_priority")
def set_priority(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["taskQuery", "priority"])
    manager = get_todo_manager(request)
    result = manager.set_priority(fields["taskQuery"], fields["priority"])
    return success_response(result.to_dict())


@router.post("/tasks:list_tasks")
def list_tasks(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List active tasks, optionally only urgent ones or ones due today."""
    filter_name = read_string_fields(payload, optional=["filter"])["filter"] or "all"
    if filter_name not in LIST_FILTERS:
        raise TodoError(
            "INVALID_FILTER",
            "filter must be all, urgent, or today.",
            {"filter": filter_name},
        )

    manager = get_todo_manager(request)
    return success_response(manager.list_tasks(filter_name).to_dict())


@router.post("/tasks:search_tasks")
def search_tasks(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = read_string_fields(payload, ["query"])
    manager = get_todo_manager(request)
    return success_response(manager.search_tasks(fields["query"]).to_dict())
