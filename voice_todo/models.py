"""Task records and their single-line text encoding.

An active task line looks like ``004 [URGENT] Call mom (due: 2026-10-19)``.
Priority and deadline are kept as fields on :class:`Task`; the ``[URGENT]`` /
``[LOW]`` prefix and the `` (due: ...)`` suffix only exist in the encoded
text. Decoding recognises the canonical markers exactly, so for any trimmed
line ``Task.from_text(id, text).text == text``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from voice_todo.task_ids import format_task_id

PRIORITY_URGENT = "urgent"
PRIORITY_NORMAL = "normal"
PRIORITY_LOW = "low"
PRIORITIES = (PRIORITY_URGENT, PRIORITY_NORMAL, PRIORITY_LOW)
PRIORITY_MARKERS = {PRIORITY_URGENT: "[URGENT]", PRIORITY_LOW: "[LOW]"}
DONE_MARKER = "[DONE]"

_PRIORITY_PREFIX = re.compile(r"^\[(?P<marker>URGENT|LOW)\] (?P<rest>.*)$")
_DEADLINE_SUFFIX = re.compile(r"^(?P<rest>.*) \(due: (?P<due>[^()]*)\)$")

# Hand-edited variants ("[urgent]Call", "(due:friday)") that the canonical
# decoder leaves in the description.
_LOOSE_PRIORITY_MARKER = re.compile(r"^\[(?:URGENT|LOW)\]\s*", re.IGNORECASE)
_LOOSE_DEADLINE = re.compile(r"\s*\(due:.*?\)", re.IGNORECASE)


def normalize_priority(priority: str | None) -> str:
    """Map free-form priority input onto one of :data:`PRIORITIES`."""
    if not isinstance(priority, str):
        return PRIORITY_NORMAL
    value = priority.strip().lower()
    if value in PRIORITIES:
        return value
    return PRIORITY_NORMAL


def decode_task_text(text: str) -> tuple[str, str, str | None]:
    """Split encoded task text into ``(description, priority, deadline)``."""
    priority = PRIORITY_NORMAL
    rest = text
    match = _PRIORITY_PREFIX.match(rest)
    if match:
        priority = match.group("marker").lower()
        rest = match.group("rest")

    deadline: str | None = None
    match = _DEADLINE_SUFFIX.match(rest)
    if match:
        deadline = match.group("due")
        rest = match.group("rest")
    return rest, priority, deadline


def encode_task_text(description: str, priority: str, deadline: str | None) -> str:
    text = description
    marker = PRIORITY_MARKERS.get(priority)
    if marker:
        text = f"{marker} {text}"
    if deadline is not None:
        text = f"{text} (due: {deadline})"
    return text


@dataclass
class Task:
    """An active task with a stable display id."""

    id: int
    description: str
    priority: str = PRIORITY_NORMAL
    deadline: str | None = None
    needs_id_assignment: bool = False

    @classmethod
    def from_text(cls, task_id: int, text: str, **kwargs: Any) -> "Task":
        description, priority, deadline = decode_task_text(text)
        return cls(
            id=task_id,
            description=description,
            priority=priority,
            deadline=deadline,
            **kwargs,
        )

    @property
    def text(self) -> str:
        return encode_task_text(self.description, self.priority, self.deadline)

    @property
    def line(self) -> str:
        return f"{format_task_id(self.id)} {self.text}"

    def replace_text(self, text: str) -> None:
        """Replace the whole task text; markers in ``text`` are taken as given."""
        self.description, self.priority, self.deadline = decode_task_text(text)

    def set_priority(self, priority: str | None) -> None:
        description = self.description
        while True:
            stripped = _LOOSE_PRIORITY_MARKER.sub("", description, count=1)
            if stripped == description:
                break
            description = stripped
        self.description = description
        self.priority = normalize_priority(priority)

    def set_deadline(self, deadline: str) -> None:
        self.description = _LOOSE_DEADLINE.sub("", self.description)
        self.deadline = deadline

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "fullLine": self.line,
            "priority": self.priority,
            "deadline": self.deadline,
        }


@dataclass
class CompletedTask:
    """A finished task; it keeps its text and completion date but not its id."""

    text: str
    completed_date: str

    @property
    def line(self) -> str:
        return f"{DONE_MARKER} {self.completed_date} {self.text}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "completedDate": self.completed_date,
            "fullLine": self.line,
        }
