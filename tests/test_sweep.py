"""
Tests for the age-based filesystem sweeps.
"""

import os
import time

import pytest

from diskguard.sweep import (
    SECONDS_PER_DAY,
    delete_empty_dirs,
    delete_old_files,
    is_rotated_log,
    older_than_days,
    truncate_large_logs,
)

NOW = time.time()


def age(path, days):
    stamp = NOW - days * SECONDS_PER_DAY
    os.utime(path, (stamp, stamp))


def touch(path, days, content=b"x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    age(path, days)
    return path


class TestAge:
    def test_whole_days_strictly_greater(self):
        assert older_than_days(NOW - 8 * SECONDS_PER_DAY, 7, NOW)
        assert not older_than_days(NOW - 7.5 * SECONDS_PER_DAY, 7, NOW)
        assert not older_than_days(NOW - 7 * SECONDS_PER_DAY, 7, NOW)

    def test_zero_days(self):
        assert older_than_days(NOW - 1.5 * SECONDS_PER_DAY, 0, NOW)
        assert not older_than_days(NOW - 3600, 0, NOW)


class TestDeleteOldFiles:
    def test_removes_only_old_files(self, tmp_path):
        old = touch(tmp_path / "old.txt", 10, b"12345")
        nested = touch(tmp_path / "a" / "b" / "nested.bin", 30, b"123")
        fresh = touch(tmp_path / "fresh.txt", 1)

        stats = delete_old_files(str(tmp_path), 7, now=NOW)

        assert stats.removed == 2
        assert stats.bytes_freed == 8
        assert stats.exit_code == 0
        assert not old.exists()
        assert not nested.exists()
        assert fresh.exists()
        assert (tmp_path / "a" / "b").is_dir()

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            delete_old_files(str(tmp_path / "nope"), 7)

    def test_symlinks_are_not_followed(self, tmp_path):
        outside = tmp_path / "outside"
        target = touch(outside / "precious.dat", 30)
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(outside, root / "dirlink")
        os.symlink(target, root / "filelink")

        delete_old_files(str(root), 7, now=NOW)

        assert target.exists()
        assert (root / "filelink").is_symlink()

    def test_rotated_logs_only(self, tmp_path):
        for name in ("syslog.1", "syslog.2.gz", "app-old", "kern.log.old", "messages-20240101"):
            touch(tmp_path / name, 30)
        live = [touch(tmp_path / name, 30) for name in ("syslog", "app.log", "Xorg.0.log")]
        recent = touch(tmp_path / "fresh.gz", 1)

        stats = delete_old_files(str(tmp_path), 14, match=is_rotated_log, now=NOW)

        assert stats.removed == 5
        assert sorted(p.name for p in tmp_path.iterdir()) == sorted(
            [p.name for p in live] + [recent.name]
        )


@pytest.mark.parametrize(
    "name",
    ["syslog.1", "syslog.gz", "app-old", "app.log.3", "dpkg.log.2.gz", "messages-20240101", "x.old", "auth.log.xz"],
)
def test_rotated_names(name):
    assert is_rotated_log(name)


@pytest.mark.parametrize("name", ["syslog", "app.log", "kern.log", "Xorg.0.log", "lastlog", "wtmp", "cold"])
def test_live_names(name):
    assert not is_rotated_log(name)


class TestDeleteEmptyDirs:
    def test_old_empty_dirs_removed(self, tmp_path):
        old_empty = tmp_path / "old_empty"
        new_empty = tmp_path / "new_empty"
        busy = tmp_path / "busy"
        old_empty.mkdir()
        new_empty.mkdir()
        touch(busy / "file", 1)
        for path, days in ((old_empty, 10), (new_empty, 1), (busy, 10)):
            age(path, days)

        stats = delete_empty_dirs(str(tmp_path), 7, now=NOW)

        assert stats.removed == 1
        assert not old_empty.exists()
        assert new_empty.exists()
        assert busy.exists()

    def test_parent_is_refreshed_by_child_removal(self, tmp_path):
        inner = tmp_path / "outer" / "inner"
        inner.mkdir(parents=True)
        age(inner, 10)
        age(inner.parent, 10)

        delete_empty_dirs(str(tmp_path), 7, now=time.time())

        assert not inner.exists()
        assert inner.parent.exists()

    def test_root_is_never_removed(self, tmp_path):
        root = tmp_path / "only"
        root.mkdir()
        age(root, 30)

        assert delete_empty_dirs(str(root), 7, now=NOW).removed == 0
        assert root.is_dir()


class TestTruncateLargeLogs:
    def test_truncates_in_place(self, tmp_path):
        big = touch(tmp_path / "abc" / "abc-json.log", 0, b"x" * 2048)
        small = touch(tmp_path / "def" / "def-json.log", 0, b"x" * 100)
        other = touch(tmp_path / "abc" / "config.v2.json", 0, b"x" * 4096)

        stats = truncate_large_logs(str(tmp_path), 1024)

        assert stats.removed == 1
        assert stats.bytes_freed == 2048
        assert big.exists()
        assert big.stat().st_size == 0
        assert small.stat().st_size == 100
        assert other.stat().st_size == 4096

    def test_missing_directory(self, tmp_path):
        assert truncate_large_logs(str(tmp_path / "containers"), 1024).removed == 0
