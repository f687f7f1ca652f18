"""Configuration loading for the task service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TASK_FILE = "~/Desktop/todo.txt"
DEFAULT_BACKUP_DIR = "~/.jarvis-backups"
DEFAULT_MAX_BACKUPS = 10
DEFAULT_INTENT_URL = "https://api.openai.com/v1"
DEFAULT_INTENT_MODEL = "gpt-4.1-mini"
DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    task_file: Path
    backup_dir: Path
    max_backups: int
    service_token: str | None
    intent_url: str
    intent_model: str
    intent_api_key: str | None
    log_level: str


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    value = os.environ.get(key)
    if value is None:
        value = _read_dotenv_value(dotenv_path, key)
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _read_path(raw_value: str | None, *, default: str) -> Path:
    return Path(raw_value or default).expanduser().resolve()


def _read_positive_int(raw_value: str | None, *, default: int, key: str) -> int:
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer.") from None
    if value < 1:
        raise ConfigError(f"{key} must be at least 1.")
    return value


def load_config() -> AppConfig:
    """Load configuration from the environment, falling back to ./.env."""
    dotenv_path = Path.cwd() / ".env"

    max_backups_key = "VOICE_TODO_MAX_BACKUPS"
    max_backups = _read_positive_int(
        _read_setting(dotenv_path, max_backups_key),
        default=DEFAULT_MAX_BACKUPS,
        key=max_backups_key,
    )

    log_level_key = "VOICE_TODO_LOG_LEVEL"
    log_level = (_read_setting(dotenv_path, log_level_key) or DEFAULT_LOG_LEVEL).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(f"{log_level_key} must be one of {sorted(_LOG_LEVELS)}.")

    intent_api_key = _read_setting(dotenv_path, "VOICE_TODO_INTENT_API_KEY")
    if intent_api_key is None:
        intent_api_key = _read_setting(dotenv_path, "OPENAI_API_KEY")

    return AppConfig(
        task_file=_read_path(
            _read_setting(dotenv_path, "VOICE_TODO_FILE"), default=DEFAULT_TASK_FILE
        ),
        backup_dir=_read_path(
            _read_setting(dotenv_path, "VOICE_TODO_BACKUP_DIR"),
            default=DEFAULT_BACKUP_DIR,
        ),
        max_backups=max_backups,
        service_token=_read_setting(dotenv_path, "VOICE_TODO_SERVICE_TOKEN"),
        intent_url=(
            _read_setting(dotenv_path, "VOICE_TODO_INTENT_URL") or DEFAULT_INTENT_URL
        ),
        intent_model=(
            _read_setting(dotenv_path, "VOICE_TODO_INTENT_MODEL")
            or DEFAULT_INTENT_MODEL
        ),
        intent_api_key=intent_api_key,
        log_level=log_level,
    )
