"""LLM-backed interpretation of spoken commands into task operations."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from voice_todo.config import DEFAULT_INTENT_MODEL, DEFAULT_INTENT_URL
from voice_todo.tool_schemas import load_tool_definitions

logger = logging.getLogger(__name__)

ERROR_FUNCTION = "error"
NOT_UNDERSTOOD_MESSAGE = "Could not understand your request. Please try again."
UNAVAILABLE_MESSAGE = "Sorry, I had trouble processing your request."

SYSTEM_PROMPT = (
    "You are an intent parser for a voice todo assistant. Parse the user's "
    "voice command and return ONLY a JSON object with the function to call "
    "and its parameters.\n\n"
    "Available functions:\n"
    "- add_task: Add new task. Params: {task: string, priority?: "
    '"urgent"|"normal"|"low", deadline?: "today"|"tomorrow"|date}\n'
    "- mark_complete: Mark task done. Params: {taskQuery: string}\n"
    "- update_task: Edit task text. Params: {taskQuery: string, newText: string}\n"
    "- delete_task: Remove task. Params: {taskQuery: string}\n"
    "- add_deadline: Set due date. Params: {taskQuery: string, deadline: string}\n"
    "- set_priority: Change priority. Params: {taskQuery: string, priority: "
    '"urgent"|"normal"|"low"}\n'
    '- list_tasks: Read tasks. Params: {filter?: "urgent"|"today"|"all"}\n'
    "- search_tasks: Find tasks. Params: {query: string}\n\n"
    "Current tasks: {current_tasks}\n\n"
    "Examples:\n"
    '"Add call John about the meeting" -> {"function": "add_task", '
    '"params": {"task": "call John about the meeting"}}\n'
    '"Mark dentist done" -> {"function": "mark_complete", '
    '"params": {"taskQuery": "dentist"}}\n'
    '"What needs my attention" -> {"function": "list_tasks", '
    '"params": {"filter": "urgent"}}\n'
    '"Make grocery shopping urgent" -> {"function": "set_priority", '
    '"params": {"taskQuery": "grocery shopping", "priority": "urgent"}}\n\n'
    "IMPORTANT: Return ONLY valid JSON. No explanation or extra text."
)


@dataclass(frozen=True)
class Intent:
    """A function name plus the parameters to call it with."""

    function: str
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def error(cls, message: str) -> "Intent":
        return cls(ERROR_FUNCTION, {"message": message})


def _strip_think_blocks(text: str) -> str:
    if not text:
        return ""
    return re.sub(r"<think>.*?</think>", "", text, flags=re.IGNORECASE | re.DOTALL)


def _extract_braced_json(text: str, start_index: int = 0) -> str | None:
    brace_start = text.find("{", start_index)
    if brace_start == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for idx in range(brace_start, len(text)):
        char = text[idx]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[brace_start : idx + 1]
    return None


def _normalize_args(raw_args: Any) -> dict[str, Any]:
    if isinstance(raw_args, dict):
        return raw_args
    if isinstance(raw_args, str):
        if not raw_args.strip():
            return {}
        try:
            parsed = json.loads(raw_args)
        except json.JSONDecodeError:
            raise ValueError("Tool arguments must be valid JSON.")
        if isinstance(parsed, dict):
            return parsed
        raise ValueError("Tool arguments must decode to an object.")
    if raw_args is None:
        return {}
    raise ValueError("Tool arguments must be an object.")


def _intent_from_tool_calls(message: dict[str, Any]) -> Intent | None:
    tool_calls = message.get("tool_calls")
    if not isinstance(tool_calls, list) or not tool_calls:
        return None
    function = tool_calls[0].get("function") if isinstance(tool_calls[0], dict) else None
    if not isinstance(function, dict):
        return None
    name = function.get("name")
    if not isinstance(name, str) or not name:
        return None
    try:
        params = _normalize_args(function.get("arguments"))
    except ValueError:
        logger.warning("Discarding tool call with unreadable arguments: %r", function)
        return None
    return Intent(name, params)


def _intent_from_content(content: Any) -> Intent | None:
    if not isinstance(content, str):
        return None
    block = _extract_braced_json(_strip_think_blocks(content))
    if block is None:
        return None
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    name = parsed.get("function")
    if not isinstance(name, str) or not name:
        return None
    params = parsed.get("params")
    if not isinstance(params, dict):
        params = {}
    return Intent(name, params)


def intent_from_message(message: dict[str, Any]) -> Intent | None:
    """Read an intent from a chat message, preferring structured tool calls."""
    return _intent_from_tool_calls(message) or _intent_from_content(
        message.get("content")
    )


class IntentParser:
    """Client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_INTENT_URL,
        model: str = DEFAULT_INTENT_MODEL,
        api_key: str | None = None,
        *,
        tools: list[dict[str, Any]] | None = None,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._tools = tools if tools is not None else load_tool_definitions()
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._http = http or httpx.Client(timeout=timeout, headers=headers)

    def close(self) -> None:
        self._http.close()

    def parse_intent(self, text: str, current_tasks: list[str]) -> Intent:
        """Interpret ``text``; failures come back as an ``error`` intent."""
        prompt = SYSTEM_PROMPT.replace(
            "{current_tasks}", ", ".join(current_tasks) or "None"
        )
        try:
            response = self._http.post(
                f"{self._base_url}/chat/completions",
                json={
                    "model": self._model,
                    "messages": [
                        {"role": "system", "content": prompt},
                        {"role": "user", "content": text},
                    ],
                    "tools": self._tools,
                    "temperature": 0.1,
                    "max_tokens": 200,
                },
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            logger.error("Intent request failed: %s", exc)
            return Intent.error(UNAVAILABLE_MESSAGE)
        except ValueError:
            logger.error("Intent response was not JSON")
            return Intent.error(UNAVAILABLE_MESSAGE)

        choices = body.get("choices") if isinstance(body, dict) else None
        message = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
        if not isinstance(message, dict):
            logger.warning("Intent response had no message: %r", body)
            return Intent.error(NOT_UNDERSTOOD_MESSAGE)

        intent = intent_from_message(message)
        if intent is None:
            logger.warning("Could not read an intent from %r", message)
            return Intent.error(NOT_UNDERSTOOD_MESSAGE)
        logger.info("Parsed intent %s %s", intent.function, intent.params)
        return intent
