"""Voice webhook: transcript in, short spoken reply out."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from voice_todo.errors import TaskStoreError
from voice_todo.payload import _ensure_payload_dict
from voice_todo.router import router
from voice_todo.state import get_intent_parser, get_todo_manager

logger = logging.getLogger(__name__)

SESSION_START = "SESSION_START"
GREETING = "Hello! I'm JARVIS, your voice todo assistant. What can I help you with?"
NOT_HEARD = "I didn't catch that. Could you please repeat?"
UNAVAILABLE = "Sorry, I'm having trouble accessing the todo system."


@router.post("/webhook")
def handle_voice_command(payload: dict[str, Any], request: Request) -> Any:
    """Interpret one transcript turn and apply it to the task file.

    Session and turn identifiers from the voice pipeline are accepted but not
    interpreted.
    """
    payload = _ensure_payload_dict(payload)
    if payload.get("type") == SESSION_START:
        return {"message": GREETING}

    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        return {"message": NOT_HEARD}

    manager = get_todo_manager(request)
    parser = get_intent_parser(request)
    logger.info("Processing voice command %r (turn %s)", text, payload.get("turn_id"))

    try:
        current = [task["fullLine"] for task in manager.get_active_tasks()]
        intent = parser.parse_intent(text.strip(), current)
        reply = manager.execute_intent(intent)
        todos = [task["fullLine"] for task in manager.get_active_tasks()]
    except TaskStoreError:
        logger.exception("Voice command failed")
        return JSONResponse(status_code=500, content={"message": UNAVAILABLE})

    logger.info("Reply: %s", reply)
    return {
        "message": reply,
        "type": "todos_updated",
        "todos": todos,
        "action": intent.function,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
