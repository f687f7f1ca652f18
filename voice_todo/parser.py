"""Parsing of the plain-text task file."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date

from voice_todo.models import DONE_MARKER, CompletedTask, Task
from voice_todo.task_ids import IdAllocator

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
DONE_LINE_PATTERN = re.compile(
    r"^\[DONE\]\s*(?P<date>\d{4}-\d{2}-\d{2})?\s*(?P<text>.+)$"
)
ACTIVE_LINE_PATTERN = re.compile(r"^(?P<id>\d{3})\s+(?P<text>.+)$")


@dataclass
class ParsedTaskFile:
    """Result of parsing a task file.

    ``allocator`` is derived from the ids found in the file and is the only
    allocation state an operation should use for this snapshot.
    """

    active: list[Task]
    done: list[CompletedTask]
    allocator: IdAllocator
    anomalies: list[str] = field(default_factory=list)

    @property
    def needs_rewrite(self) -> bool:
        return any(task.needs_id_assignment for task in self.active)


def parse_task_file(content: str, today: date | None = None) -> ParsedTaskFile:
    """Split raw file text into active and completed tasks.

    Lines without an id (legacy lines) and lines repeating an id already seen
    get fresh ids after all explicit ids are known, and are flagged so the
    next write persists them. Malformed ``[DONE]`` lines are dropped and
    reported in ``anomalies``.
    """
    fallback_date = (today or date.today()).isoformat()
    active: list[Task] = []
    done: list[CompletedTask] = []
    anomalies: list[str] = []
    explicit_ids: set[int] = set()
    pending: list[Task] = []

    lines = [line.strip() for line in content.splitlines()]
    for line in lines:
        if not line or line.startswith(COMMENT_PREFIX):
            continue

        if line.startswith(DONE_MARKER):
            match = DONE_LINE_PATTERN.match(line)
            if not match:
                logger.warning("Dropping malformed completed line: %r", line)
                anomalies.append(line)
                continue
            done.append(
                CompletedTask(
                    text=match.group("text").strip(),
                    completed_date=match.group("date") or fallback_date,
                )
            )
            continue

        match = ACTIVE_LINE_PATTERN.match(line)
        if match:
            task_id = int(match.group("id"))
            task = Task.from_text(task_id, match.group("text"))
            if task_id in explicit_ids:
                logger.warning("Duplicate task id %s; assigning a new one", task_id)
                task.needs_id_assignment = True
                pending.append(task)
            else:
                explicit_ids.add(task_id)
        else:
            task = Task.from_text(0, line, needs_id_assignment=True)
            pending.append(task)
        active.append(task)

    allocator = IdAllocator.from_ids(explicit_ids)
    for task in pending:
        task.id = allocator.next_id()

    return ParsedTaskFile(
        active=active, done=done, allocator=allocator, anomalies=anomalies
    )
