import itertools
from datetime import datetime, timedelta, timezone

import pytest

from voice_todo.backups import BackupManager
from voice_todo.errors import BackupError

START = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _ticking_clock(step=timedelta(seconds=1)):
    ticks = itertools.count()
    return lambda: START + step * next(ticks)


def _backup_name(moment):
    return f"todo-backup-{moment.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.txt"


def test_backup_skips_missing_file(tmp_path):
    manager = BackupManager(tmp_path / "backups")

    assert manager.backup(tmp_path / "todo.txt") is None
    assert not (tmp_path / "backups").exists()


def test_backup_copies_file_verbatim(tmp_path):
    task_file = tmp_path / "todo.txt"
    task_file.write_text("# My Todo List\n001 Buy milk\n", encoding="utf-8")
    manager = BackupManager(tmp_path / "backups", clock=_ticking_clock())

    backup_path = manager.backup(task_file)

    assert backup_path == tmp_path / "backups" / _backup_name(START)
    assert backup_path.read_text(encoding="utf-8") == "# My Todo List\n001 Buy milk\n"


def test_backup_keeps_only_newest_backups(tmp_path):
    task_file = tmp_path / "todo.txt"
    task_file.write_text("001 Buy milk\n", encoding="utf-8")
    manager = BackupManager(tmp_path / "backups", clock=_ticking_clock())

    for _ in range(13):
        manager.backup(task_file)

    names = [path.name for path in manager.list_backups()]
    expected = [
        _backup_name(START + timedelta(seconds=index)) for index in range(12, 2, -1)
    ]
    assert names == expected


def test_backups_taken_in_the_same_instant_do_not_collide(tmp_path):
    task_file = tmp_path / "todo.txt"
    task_file.write_text("001 Buy milk\n", encoding="utf-8")
    manager = BackupManager(tmp_path / "backups", clock=lambda: START)

    first = manager.backup(task_file)
    second = manager.backup(task_file)

    assert first != second
    assert len(manager.list_backups()) == 2
    assert manager.list_backups()[0] == second


def test_prune_ignores_unrelated_files(tmp_path):
    backup_dir = tmp_path / "backups"
    backup_dir.mkdir()
    (backup_dir / "activity.log").write_text("{}\n", encoding="utf-8")
    task_file = tmp_path / "todo.txt"
    task_file.write_text("001 Buy milk\n", encoding="utf-8")
    manager = BackupManager(backup_dir, max_backups=1, clock=_ticking_clock())

    manager.backup(task_file)
    manager.backup(task_file)

    assert len(manager.list_backups()) == 1
    assert (backup_dir / "activity.log").exists()


def test_backup_failure_raises(tmp_path):
    blocker = tmp_path / "backups"
    blocker.write_text("not a directory", encoding="utf-8")
    task_file = tmp_path / "todo.txt"
    task_file.write_text("001 Buy milk\n", encoding="utf-8")
    manager = BackupManager(blocker)

    with pytest.raises(BackupError):
        manager.backup(task_file)


def test_backup_manager_rejects_zero_retention(tmp_path):
    with pytest.raises(ValueError):
        BackupManager(tmp_path, max_backups=0)
