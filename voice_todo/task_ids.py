"""Allocation of the three-digit ids shown next to active tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from voice_todo.errors import TaskIdsExhaustedError

TASK_ID_WIDTH = 3
MAX_TASK_ID = 999


def format_task_id(task_id: int) -> str:
    """Zero-pad an id to three digits."""
    return f"{task_id:0{TASK_ID_WIDTH}d}"


@dataclass
class IdAllocator:
    """Hands out ids that are unique among the currently active tasks.

    The allocator is rebuilt from every parse of the task file, so its state
    always describes the file it was derived from. ``next_candidate`` only
    moves forward; a released id is handed out again only once the file is
    re-parsed and the counter is recomputed from the remaining ids, or once
    the counter runs past :data:`MAX_TASK_ID` and wraps to the lowest free id.
    """

    used: set[int] = field(default_factory=set)
    next_candidate: int = 1

    @classmethod
    def from_ids(cls, ids: Iterable[int]) -> "IdAllocator":
        used = set(ids)
        return cls(used=used, next_candidate=max(used, default=0) + 1)

    def next_id(self) -> int:
        while self.next_candidate in self.used:
            self.next_candidate += 1
        if self.next_candidate > MAX_TASK_ID:
            self.next_candidate = self._lowest_free_id()
        task_id = self.next_candidate
        self.used.add(task_id)
        self.next_candidate += 1
        return task_id

    def release(self, task_id: int) -> None:
        self.used.discard(task_id)

    def is_used(self, task_id: int) -> bool:
        return task_id in self.used

    def _lowest_free_id(self) -> int:
        for task_id in range(1, MAX_TASK_ID + 1):
            if task_id not in self.used:
                return task_id
        raise TaskIdsExhaustedError(
            f"All {MAX_TASK_ID} task ids are in use."
        )
