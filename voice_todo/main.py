"""FastAPI entrypoint for the voice todo service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from voice_todo.config import load_config
from voice_todo.engine import TodoManager
from voice_todo.errors import (
    ErrorResponse,
    TaskStoreError,
    TodoError,
    error_response,
)
from voice_todo.intents import IntentParser
from voice_todo.routes import register_routes
from voice_todo.state import AUTH_EXEMPT_PATHS, SERVICE_TOKEN_HEADER

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = load_config()
        app.state.config = config
        app.state.todo_manager = TodoManager.from_config(config)
        app.state.intent_parser = IntentParser(
            config.intent_url, config.intent_model, config.intent_api_key
        )
        logger.info("Serving tasks from %s", config.task_file)
        try:
            app.state.todo_manager.normalize()
        except TaskStoreError:
            logger.exception("Could not assign ids to un-numbered tasks")
        try:
            yield
        finally:
            app.state.intent_parser.close()

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        path = request.url.path
        if path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=error.status_code, content=error_response(error)
                )

        return await call_next(request)

    @app.exception_handler(TodoError)
    def handle_todo_error(request: Request, exc: TodoError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.error.status_code, content=error_response(exc.error)
        )

    @app.exception_handler(TaskStoreError)
    def handle_store_error(request: Request, exc: TaskStoreError) -> JSONResponse:
        logger.error("Task file error: %s", exc)
        error = exc.to_response()
        return JSONResponse(status_code=error.status_code, content=error_response(error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_routes(app)
    return app


app = create_app()
