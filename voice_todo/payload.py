"""Validation of JSON bodies posted to the task endpoints."""

from __future__ import annotations

from typing import Any, Iterable

from voice_todo.errors import TodoError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise TodoError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def read_string_fields(
    payload: Any,
    required: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> dict[str, str | None]:
    """Return the named string fields of ``payload``.

    Every field is keyed in the result; absent optional fields are ``None``.
    Fields outside ``required`` and ``optional`` are rejected so a misspelt
    name is not silently ignored.
    """
    payload = _ensure_payload_dict(payload)
    required = list(required)
    optional = list(optional)

    unknown = sorted(set(payload) - set(required) - set(optional))
    if unknown:
        raise TodoError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown},
        )

    missing = [name for name in required if payload.get(name) is None]
    if missing:
        raise TodoError(
            "MISSING_FIELDS",
            f"{', '.join(missing)} required.",
            {"fields": missing},
        )

    fields: dict[str, str | None] = {}
    for name in required + optional:
        value = payload.get(name)
        if value is not None and not isinstance(value, str):
            raise TodoError(
                "INVALID_TYPE",
                f"{name} must be a string.",
                {name: str(value)},
            )
        fields[name] = value
    return fields
