"""Error types shared by the task engine and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Codes not listed here are caller mistakes and map to 400.
STATUS_BY_CODE = {
    "AUTH_FORBIDDEN": 403,
    "TASK_IDS_EXHAUSTED": 409,
    "TASK_FILE_ERROR": 500,
    "BACKUP_ERROR": 500,
    "TOOL_SCHEMA_ERROR": 500,
    "NOT_READY": 503,
}


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by HTTP handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.code, 400)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class TodoError(RuntimeError):
    """A request the service refuses, reported as an error envelope."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


class TaskStoreError(RuntimeError):
    """Raised when the task file cannot be read or written.

    The engine turns these into spoken failure messages; anything that reaches
    the HTTP layer is reported with :attr:`code`.
    """

    code = "TASK_FILE_ERROR"

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=str(self))


class BackupError(TaskStoreError):
    """Raised when a snapshot of the task file cannot be taken."""

    code = "BACKUP_ERROR"


class TaskIdsExhaustedError(TaskStoreError):
    """Raised when every three-digit id is held by an active task."""

    code = "TASK_IDS_EXHAUSTED"


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    return {"ok": False, "error": error.to_dict()}
