"""
Age-based filesystem sweeps used by the reclamation catalog.

Walks never cross into other filesystems and never follow symlinks. Age is
counted the way ``find -mtime +N`` counts it: whole days of age strictly
greater than N.
"""

import glob
import logging
import os
import re
import stat
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# Suffixes that mark a log as an archived copy: compression, numeric
# rotation (.1, .log.3), logrotate dateext (-20240131) and .old/-old.
# A live log name carries none of these.
ROTATED_LOG_RE = re.compile(r"(?:\.(?:gz|xz|bz2|zst|lz4|zip)|\.\d+|-\d{8}|[.-]old)$")

DOCKER_LOG_GLOB = os.path.join("*", "*-json.log")


@dataclass
class SweepStats:
    removed: int = 0
    errors: int = 0
    bytes_freed: int = 0

    @property
    def exit_code(self) -> int:
        # find exits 1 when any -delete failed
        return 1 if self.errors else 0


def is_rotated_log(name: str) -> bool:
    return ROTATED_LOG_RE.search(name) is not None


def older_than_days(mtime: float, days: int, now: float) -> bool:
    return int((now - mtime) // SECONDS_PER_DAY) > days


def _iter_tree(root: str) -> Iterator[tuple[str, os.stat_result]]:
    """Yield (path, lstat) for everything under *root* on the same device."""
    root_dev = os.lstat(root).st_dev
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            logger.debug(f"Cannot read {current}: {e}")
            continue
        for entry in entries:
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            yield entry.path, st
            if stat.S_ISDIR(st.st_mode) and st.st_dev == root_dev:
                stack.append(entry.path)


def delete_old_files(
    root: str,
    days: int,
    match: Callable[[str], bool] | None = None,
    now: float | None = None,
) -> SweepStats:
    """
    Delete regular files under *root* older than *days*.

    Args:
        root: Directory to sweep (FileNotFoundError if missing)
        days: Retention in whole days
        match: Optional predicate on the file name
        now: Reference time (defaults to time.time())

    Returns:
        SweepStats for the pass
    """
    now = time.time() if now is None else now
    stats = SweepStats()
    for path, st in _iter_tree(root):
        if not stat.S_ISREG(st.st_mode):
            continue
        if match is not None and not match(os.path.basename(path)):
            continue
        if not older_than_days(st.st_mtime, days, now):
            continue
        try:
            os.unlink(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug(f"Cannot remove {path}: {e}")
            stats.errors += 1
            continue
        stats.removed += 1
        stats.bytes_freed += st.st_size
    return stats


def delete_empty_dirs(root: str, days: int, now: float | None = None) -> SweepStats:
    """Remove empty directories under *root* older than *days*, deepest first.

    *root* itself is never removed.
    """
    now = time.time() if now is None else now
    stats = SweepStats()
    dirs = [path for path, st in _iter_tree(root) if stat.S_ISDIR(st.st_mode)]
    root_dev = os.lstat(root).st_dev

    # Pre-order listing reversed puts every directory after its descendants
    for path in reversed(dirs):
        try:
            st = os.lstat(path)
            if st.st_dev != root_dev or not older_than_days(st.st_mtime, days, now):
                continue
            with os.scandir(path) as it:
                if next(it, None) is not None:
                    continue
            os.rmdir(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug(f"Cannot remove {path}: {e}")
            stats.errors += 1
            continue
        stats.removed += 1
    return stats


def truncate_large_logs(containers_dir: str, max_bytes: int) -> SweepStats:
    """
    Truncate container json logs larger than *max_bytes* to zero length.

    The files are truncated in place, never unlinked: the container runtime
    keeps an open handle on them.
    """
    stats = SweepStats()
    for path in sorted(glob.glob(os.path.join(glob.escape(containers_dir), DOCKER_LOG_GLOB))):
        try:
            st = os.lstat(path)
            if not stat.S_ISREG(st.st_mode) or st.st_size <= max_bytes:
                continue
            os.truncate(path, 0)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug(f"Cannot truncate {path}: {e}")
            stats.errors += 1
            continue
        stats.removed += 1
        stats.bytes_freed += st.st_size
    return stats
