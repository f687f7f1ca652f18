"""Timestamped snapshots of the task file."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from voice_todo.errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "todo-backup-"
BACKUP_SUFFIX = ".txt"
DEFAULT_MAX_BACKUPS = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp_token(moment: datetime) -> str:
    # Fixed-width so that name order is time order.
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def _is_backup_name(name: str) -> bool:
    return name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)


class BackupManager:
    """Copies the task file aside before each write and prunes old copies."""

    def __init__(
        self,
        backup_dir: Path,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1.")
        self.backup_dir = Path(backup_dir)
        self.max_backups = max_backups
        self._clock = clock

    def backup(self, file_path: Path) -> Path | None:
        """Snapshot ``file_path``; returns ``None`` when there is nothing to copy.

        Any failure to create the directory or copy the file raises
        :class:`BackupError` so the caller does not write without a backup.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            logger.debug("No task file at %s; skipping backup", file_path)
            return None

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self._unused_backup_path()
            shutil.copyfile(file_path, backup_path)
        except OSError as exc:
            raise BackupError(f"Backup failed: {exc}") from exc

        logger.info("Created backup %s", backup_path)
        self.prune()
        return backup_path

    def list_backups(self) -> list[Path]:
        """Return existing backups, newest first."""
        if not self.backup_dir.is_dir():
            return []
        backups = [
            path
            for path in self.backup_dir.iterdir()
            if path.is_file() and _is_backup_name(path.name)
        ]
        return sorted(backups, key=lambda path: path.name, reverse=True)

    def prune(self) -> list[Path]:
        """Delete backups beyond the retention limit and return what was removed."""
        removed: list[Path] = []
        for path in self.list_backups()[self.max_backups :]:
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not delete old backup %s: %s", path, exc)
                continue
            logger.debug("Deleted old backup %s", path.name)
            removed.append(path)
        return removed

    def _unused_backup_path(self) -> Path:
        moment = self._clock()
        while True:
            candidate = self.backup_dir / (
                f"{BACKUP_PREFIX}{_timestamp_token(moment)}{BACKUP_SUFFIX}"
            )
            if not candidate.exists():
                return candidate
            moment += timedelta(microseconds=1)
