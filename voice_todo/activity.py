"""Activity log helpers and endpoint."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import Request

from voice_todo.errors import TodoError, success_response
from voice_todo.router import router
from voice_todo.state import get_todo_manager

ACTIVITY_LOG_FILENAME = "activity.log"


def activity_log_path(directory: Path) -> Path:
    return Path(directory) / ACTIVITY_LOG_FILENAME


def _append_activity_log(log_path: Path, entry: dict[str, Any]) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(entry, sort_keys=True, separators=(",", ":"))
    with log_path.open("a", encoding="utf-8") as log_file:
        log_file.write(payload + "\n")
        log_file.flush()
        os.fsync(log_file.fileno())


def _build_activity_entry(
    operation: str,
    task_id: int | None,
    summary: str,
) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "taskId": task_id,
        "summary": summary,
    }


def _read_activity_entries(
    log_path: Path, since: datetime | None, limit: int
) -> list[dict[str, Any]]:
    if not log_path.exists():
        return []
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    entries: list[dict[str, Any]] = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if since:
            timestamp = entry.get("timestamp")
            try:
                entry_time = datetime.fromisoformat(timestamp)
            except (TypeError, ValueError):
                entry_time = None
            if entry_time and entry_time < since:
                continue
        entries.append(entry)
    return entries[-limit:]


@router.get("/activity")
def read_activity_log(
    request: Request, limit: int = 50, since: str | None = None
) -> dict[str, Any]:
    """Read recent task mutations from the activity log."""
    if not isinstance(limit, int) or limit <= 0:
        raise TodoError(
            "INVALID_TYPE",
            "limit must be a positive integer.",
            {"limit": str(limit)},
        )

    since_time = None
    if since is not None:
        try:
            since_time = datetime.fromisoformat(str(since))
        except ValueError:
            raise TodoError(
                "INVALID_DATE",
                "since must be ISO date-time.",
                {"since": since},
            )

    manager = get_todo_manager(request)
    if manager.activity_log is None:
        return success_response({"entries": []})
    entries = _read_activity_entries(manager.activity_log, since_time, limit)
    return success_response({"entries": entries})
