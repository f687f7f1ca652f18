import os
import stat

import pytest

from voice_todo.utils import NEW_FILE_MODE, _atomic_write


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


def test_atomic_write_creates_file_with_default_mode(tmp_path):
    target = tmp_path / "todo.txt"

    _atomic_write(target, "# My Todo List\n001 Buy milk\n")

    assert target.read_text(encoding="utf-8") == "# My Todo List\n001 Buy milk\n"
    assert _mode(target) == NEW_FILE_MODE
    assert os.listdir(tmp_path) == ["todo.txt"]


def test_atomic_write_keeps_existing_permissions(tmp_path):
    target = tmp_path / "todo.txt"
    target.write_text("old\n", encoding="utf-8")
    os.chmod(target, 0o600)

    _atomic_write(target, "new\n")

    assert target.read_text(encoding="utf-8") == "new\n"
    assert _mode(target) == 0o600


def test_atomic_write_writes_unix_line_endings(tmp_path):
    target = tmp_path / "todo.txt"

    _atomic_write(target, "a\nb\n")

    assert target.read_bytes() == b"a\nb\n"


def test_atomic_write_leaves_no_temp_file_on_failure(tmp_path):
    target = tmp_path / "todo.txt"
    target.mkdir()

    with pytest.raises(OSError):
        _atomic_write(target, "new\n")

    assert sorted(os.listdir(tmp_path)) == ["todo.txt"]
