"""Run the service with uvicorn: ``python -m voice_todo``."""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from voice_todo.config import load_config

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001


def main() -> None:
    parser = argparse.ArgumentParser(description="Voice todo webhook service.")
    parser.add_argument("--host", default=os.getenv("PROCESS_HOST", DEFAULT_HOST))
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PROCESS_PORT", DEFAULT_PORT))
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: VOICE_TODO_LOG_LEVEL or INFO).",
    )
    args = parser.parse_args()

    level = (args.log_level or load_config().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "voice_todo.main:app",
        host=args.host,
        port=args.port,
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
