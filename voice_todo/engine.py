"""Task operations applied to the task file.

Every operation reads and parses the whole file, changes the parsed lists in
memory and writes the file back. Lookups that find nothing and blank input
come back as unsuccessful :class:`TaskResult` values rather than exceptions,
so the voice layer can always speak ``result.message``.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable

from voice_todo.activity import (
    _append_activity_log,
    _build_activity_entry,
    activity_log_path,
)
from voice_todo.backups import BackupManager
from voice_todo.config import AppConfig
from voice_todo.errors import TaskIdsExhaustedError, TaskStoreError
from voice_todo.intents import ERROR_FUNCTION, Intent
from voice_todo.models import (
    PRIORITY_URGENT,
    CompletedTask,
    Task,
    normalize_priority,
)
from voice_todo.parser import ParsedTaskFile
from voice_todo.store import TaskStore
from voice_todo.task_ids import format_task_id

logger = logging.getLogger(__name__)

URGENCY_KEYWORDS = ("urgent", "asap", "today", "important", "critical")
LIST_FILTERS = ("all", "urgent", "today")
SPOKEN_LIST_LIMIT = 5
SPOKEN_SEARCH_LIMIT = 3
MULTILINE_MESSAGE = "Please keep each task to a single line"

_TASK_ID_QUERY = re.compile(r"(?:task\s+)?(\d+)", re.IGNORECASE)


@dataclass
class TaskResult:
    """Outcome of a task operation."""

    success: bool
    message: str
    tasks: list[str] | None = None
    task: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.tasks is not None:
            payload["tasks"] = self.tasks
        if self.task is not None:
            payload["task"] = self.task
        return payload


@dataclass(frozen=True)
class TaskMatch:
    index: int
    match_type: str


def resolve_deadline(deadline: str, today: date) -> str:
    """Turn "today"/"tomorrow" into ISO dates; anything else is kept as said."""
    value = deadline.strip()
    lowered = value.lower()
    if lowered == "today":
        return today.isoformat()
    if lowered == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    return value


def find_task_by_query(tasks: list[Task], query: str) -> TaskMatch | None:
    """Locate a task by id ("3", "task 003") or by case-insensitive substring.

    An id match wins over a text match. Among text matches the first task in
    file order wins.
    """
    query = query.strip()
    id_match = _TASK_ID_QUERY.search(query)
    if id_match:
        target_id = int(id_match.group(1))
        for index, task in enumerate(tasks):
            if task.id == target_id:
                return TaskMatch(index, "id")

    lowered = query.lower()
    for index, task in enumerate(tasks):
        if lowered in task.text.lower():
            return TaskMatch(index, "text")
    return None


def _not_found(task_query: str) -> TaskResult:
    return TaskResult(False, f'Could not find task matching "{task_query}"')


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _spans_lines(value: str) -> bool:
    # Uses the same line boundaries the parser splits on.
    return len(value.strip().splitlines()) > 1


def _query_text(value: Any) -> Any:
    """Accept bare task numbers (``3``) where a query string is expected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class TodoManager:
    """Runs task operations against one task file.

    Operations are serialized through an in-process lock; the manager does not
    protect against other processes writing the same file.
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        activity_log: Path | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.activity_log = activity_log
        self._today = today
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: AppConfig) -> "TodoManager":
        backups = BackupManager(config.backup_dir, max_backups=config.max_backups)
        return cls(
            TaskStore(config.task_file, backups),
            activity_log=activity_log_path(config.backup_dir),
        )

    # -------------------- mutations --------------------

    def add_task(
        self,
        task: str,
        priority: str | None = "normal",
        deadline: str | None = None,
    ) -> TaskResult:
        if _is_blank(task):
            return TaskResult(False, "Please tell me what task to add")
        if _spans_lines(task) or (
            isinstance(deadline, str) and _spans_lines(deadline)
        ):
            return TaskResult(False, MULTILINE_MESSAGE)

        with self._lock:
            today = self._today()
            try:
                parsed = self._read(today)
                new_task = Task(
                    id=parsed.allocator.next_id(),
                    description=task.strip(),
                    priority=normalize_priority(priority),
                    deadline=(
                        resolve_deadline(deadline, today)
                        if isinstance(deadline, str) and deadline.strip()
                        else None
                    ),
                )
                parsed.active.append(new_task)
                self.store.write(parsed.active, parsed.done)
            except TaskIdsExhaustedError:
                logger.warning("No free task ids in %s", self.store.task_file)
                return TaskResult(
                    False, "Your list is full. Complete or remove a task first"
                )
            except TaskStoreError:
                logger.exception("Failed to add task")
                return TaskResult(False, "Failed to add task")

        logger.info("Added task %s", new_task.line)
        self._record("add_task", new_task.id, new_task.text)
        return TaskResult(
            True,
            f"Added as task {format_task_id(new_task.id)}",
            task=new_task.to_dict(),
        )

    def mark_complete(self, task_query: str) -> TaskResult:
        def complete(parsed: ParsedTaskFile, index: int, today: date) -> str:
            task = parsed.active.pop(index)
            parsed.allocator.release(task.id)
            parsed.done.append(CompletedTask(task.text, today.isoformat()))
            return "Done"

        return self._mutate_matching(
            "mark_complete", task_query, complete, "Failed to complete task"
        )

    def update_task(self, task_query: str, new_text: str) -> TaskResult:
        if _is_blank(new_text):
            return TaskResult(False, "Please tell me the new text for the task")
        if _spans_lines(new_text):
            return TaskResult(False, MULTILINE_MESSAGE)

        def update(parsed: ParsedTaskFile, index: int, today: date) -> str:
            parsed.active[index].replace_text(new_text.strip())
            return "Updated"

        return self._mutate_matching(
            "update_task", task_query, update, "Failed to update task"
        )

    def delete_task(self, task_query: str) -> TaskResult:
        def delete(parsed: ParsedTaskFile, index: int, today: date) -> str:
            task = parsed.active.pop(index)
            parsed.allocator.release(task.id)
            return "Removed"

        return self._mutate_matching(
            "delete_task", task_query, delete, "Failed to remove task"
        )

    def add_deadline(self, task_query: str, deadline: str) -> TaskResult:
        if _is_blank(deadline):
            return TaskResult(False, "Please tell me when the task is due")
        if _spans_lines(deadline):
            return TaskResult(False, MULTILINE_MESSAGE)

        def set_deadline(parsed: ParsedTaskFile, index: int, today: date) -> str:
            parsed.active[index].set_deadline(resolve_deadline(deadline, today))
            return "Updated"

        return self._mutate_matching(
            "add_deadline", task_query, set_deadline, "Failed to add deadline"
        )

    def set_priority(self, task_query: str, priority: str | None) -> TaskResult:
        def set_task_priority(parsed: ParsedTaskFile, index: int, today: date) -> str:
            parsed.active[index].set_priority(priority)
            return "Updated"

        return self._mutate_matching(
            "set_priority", task_query, set_task_priority, "Failed to set priority"
        )

    def normalize(self) -> bool:
        """Persist ids assigned to legacy or duplicate lines; True if rewritten."""
        with self._lock:
            parsed = self._read(self._today())
            if not parsed.needs_rewrite:
                return False
            self.store.write(parsed.active, parsed.done)
        logger.info("Assigned ids to un-numbered tasks in %s", self.store.task_file)
        return True

    # -------------------- queries --------------------

    def list_tasks(self, filter: str | None = "all") -> TaskResult:
        mode = filter.strip().lower() if isinstance(filter, str) else "all"
        with self._lock:
            today = self._today()
            try:
                active = self._read(today).active
            except TaskStoreError:
                logger.exception("Failed to list tasks")
                return TaskResult(False, "Failed to list tasks")

        if mode == PRIORITY_URGENT:
            active = [task for task in active if "[urgent]" in task.text.lower()]
        elif mode == "today":
            due_today = f"due: {today.isoformat()}"
            active = [
                task
                for task in active
                if due_today in task.text or "due: today" in task.text
            ]

        lines = [task.line for task in active]
        if not lines:
            return TaskResult(True, "No tasks found", tasks=[])
        return TaskResult(True, f"Found {len(lines)} tasks", tasks=lines)

    def search_tasks(self, query: str) -> TaskResult:
        if _is_blank(query):
            return TaskResult(False, "Please tell me what to search for")

        lowered = query.strip().lower()
        with self._lock:
            try:
                active = self._read(self._today()).active
            except TaskStoreError:
                logger.exception("Failed to search tasks")
                return TaskResult(False, "Failed to search tasks")

        lines = [task.line for task in active if lowered in task.text.lower()]
        return TaskResult(True, f"Found {len(lines)} matching tasks", tasks=lines)

    def get_active_tasks(self) -> list[dict[str, Any]]:
        with self._lock:
            active = self._read(self._today()).active
        return [
            {"id": task.id, "text": task.text, "fullLine": task.line}
            for task in active
        ]

    def get_priority_tasks(self, count: int = 5) -> list[str]:
        """Return up to ``count`` task lines ranked by urgency keywords."""
        scored = []
        for task in self.get_active_tasks():
            lowered = task["text"].lower()
            score = sum(1 for keyword in URGENCY_KEYWORDS if keyword in lowered)
            scored.append((score, task["fullLine"]))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [line for _score, line in scored[: max(count, 0)]]

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            parsed = self._read(self._today())
        return {
            "activeCount": len(parsed.active),
            "completedCount": len(parsed.done),
            "totalTasks": len(parsed.active) + len(parsed.done),
        }

    # -------------------- intents --------------------

    def execute_intent(self, intent: Intent) -> str:
        """Run a parsed intent and return a short reply suitable for speech."""
        params = intent.params if isinstance(intent.params, dict) else {}
        name = intent.function

        if name == "add_task":
            return self.add_task(
                params.get("task"), params.get("priority"), params.get("deadline")
            ).message
        if name == "mark_complete":
            return self._with_query(params, self.mark_complete).message
        if name == "update_task":
            return self._with_query(
                params, lambda query: self.update_task(query, params.get("newText"))
            ).message
        if name == "delete_task":
            return self._with_query(params, self.delete_task).message
        if name == "add_deadline":
            return self._with_query(
                params, lambda query: self.add_deadline(query, params.get("deadline"))
            ).message
        if name == "set_priority":
            return self._with_query(
                params, lambda query: self.set_priority(query, params.get("priority"))
            ).message
        if name == "list_tasks":
            filter_name = params.get("filter")
            result = self.list_tasks(filter_name)
            if not result.success:
                return result.message
            if not result.tasks:
                return "No urgent tasks" if filter_name == "urgent" else "No tasks found"
            return "Your tasks: " + ", ".join(result.tasks[:SPOKEN_LIST_LIMIT])
        if name == "search_tasks":
            query = _query_text(params.get("query"))
            result = self.search_tasks(query)
            if not result.success:
                return result.message
            if not result.tasks:
                return f'No tasks found matching "{query}"'
            return "Found: " + ", ".join(result.tasks[:SPOKEN_SEARCH_LIMIT])
        if name == ERROR_FUNCTION:
            return params.get("message") or "I didn't understand that. Please try again."

        logger.info("Unknown intent function %r", name)
        return "I'm not sure how to help with that. Try asking 'What needs my attention?'"

    # -------------------- internals --------------------

    def _read(self, today: date) -> ParsedTaskFile:
        return self.store.read(today=today)

    def _with_query(
        self, params: dict[str, Any], operation: Callable[[str], TaskResult]
    ) -> TaskResult:
        return operation(_query_text(params.get("taskQuery")))

    def _mutate_matching(
        self,
        operation: str,
        task_query: str,
        mutate: Callable[[ParsedTaskFile, int, date], str],
        failure_message: str,
    ) -> TaskResult:
        if _is_blank(task_query):
            return TaskResult(False, "Please tell me which task you mean")

        with self._lock:
            today = self._today()
            try:
                parsed = self._read(today)
                match = find_task_by_query(parsed.active, task_query)
                if match is None:
                    return _not_found(task_query)
                target = parsed.active[match.index]
                before = target.line
                message = mutate(parsed, match.index, today)
                self.store.write(parsed.active, parsed.done)
            except TaskStoreError:
                logger.exception("%s failed", operation)
                return TaskResult(False, failure_message)

        logger.info("%s: %s -> %s", operation, before, target.line)
        self._record(operation, target.id, target.text)
        return TaskResult(True, message, task=target.to_dict())

    def _record(self, operation: str, task_id: int | None, summary: str) -> None:
        if self.activity_log is None:
            return
        entry = _build_activity_entry(operation, task_id, summary)
        try:
            _append_activity_log(self.activity_log, entry)
        except OSError as exc:
            logger.warning("Could not append to activity log: %s", exc)
