"""Filesystem helpers for rewriting the task file in place."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

NEW_FILE_MODE = 0o644


def _atomic_write(target_path: Path, content: str) -> None:
    """Replace ``target_path`` with ``content`` in a single rename.

    The temporary file lives beside the target so the rename never crosses a
    filesystem. A file being replaced keeps its permission bits; a new file
    gets :data:`NEW_FILE_MODE` instead of the private mode of a temp file.
    Lines are always written with ``\\n`` endings.
    """
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=target_path.parent,
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        if target_path.exists():
            shutil.copymode(target_path, temp_path)
        else:
            os.chmod(temp_path, NEW_FILE_MODE)
        os.replace(temp_path, target_path)
        temp_path = None
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove temporary file %s: %s", temp_path, exc)
