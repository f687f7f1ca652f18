"""Reading and rewriting the task file."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Iterable

from voice_todo.backups import BackupManager
from voice_todo.errors import TaskStoreError
from voice_todo.models import CompletedTask, Task
from voice_todo.parser import ParsedTaskFile, parse_task_file
from voice_todo.utils import _atomic_write

logger = logging.getLogger(__name__)

TASK_FILE_HEADER = "# My Todo List"


def render_task_file(
    active: Iterable[Task], done: Iterable[CompletedTask]
) -> str:
    """Serialize tasks into the canonical file layout."""
    lines = [TASK_FILE_HEADER]
    lines.extend(task.line for task in active)
    done_lines = [task.line for task in done]
    if done_lines:
        lines.append("")
        lines.extend(done_lines)
    return "\n".join(lines) + "\n"


class TaskStore:
    """Owns the task file on disk.

    Every read re-parses the whole file so edits made by hand between calls
    are picked up. Every write is preceded by a backup and replaces the file
    in a single rename.
    """

    def __init__(self, task_file: Path, backups: BackupManager) -> None:
        self.task_file = Path(task_file)
        self.backups = backups

    def read(self, today: date | None = None) -> ParsedTaskFile:
        try:
            content = self.task_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No task file at %s yet; starting empty", self.task_file)
            content = ""
        except (OSError, UnicodeDecodeError) as exc:
            raise TaskStoreError(f"Failed to read task file: {exc}") from exc
        return parse_task_file(content, today=today)

    def write(self, active: list[Task], done: list[CompletedTask]) -> None:
        self.backups.backup(self.task_file)
        content = render_task_file(active, done)
        try:
            _atomic_write(self.task_file, content)
        except OSError as exc:
            raise TaskStoreError(f"Failed to write task file: {exc}") from exc
        logger.debug(
            "Wrote %d active and %d completed tasks to %s",
            len(active),
            len(done),
            self.task_file,
        )
