"""Single-instance guard: an exclusive, non-blocking flock held for the whole run."""

import errno
import fcntl
import logging
import os
import tempfile
from pathlib import Path
from typing import IO

from diskguard.errors import LockHeldError

logger = logging.getLogger(__name__)


def _permission_denied(exc: OSError) -> bool:
    return isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM, errno.EROFS)


def _fallback_lock_path(path: Path) -> Path:
    # Unprivileged runs cannot write /var/lock; keep one lock per user instead
    return Path(tempfile.gettempdir()) / f"{path.name}.{os.getuid()}"


class ConcurrencyGuard:
    """
    File lock ensuring only one cleanup runs at a time.

    Example:
        with ConcurrencyGuard("/var/lock/disk-cleanup.lock"):
            run_cleanup()

    The lock is released when the guard is closed or the process exits.
    """

    def __init__(self, lock_path: str):
        self.path = Path(lock_path)
        self._handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def _open(self) -> IO[str]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return self.path.open("a+", encoding="utf-8")
        except OSError as e:
            if not _permission_denied(e):
                raise
            fallback = _fallback_lock_path(self.path)
            logger.debug(f"Cannot open {self.path} ({e}); using {fallback}")
            self.path = fallback
            return fallback.open("a+", encoding="utf-8")

    def acquire(self) -> None:
        """
        Take the lock without waiting.

        Raises:
            LockHeldError: Another process holds the lock
        """
        if self._handle is not None:
            return
        handle = self._open()
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            handle.close()
            if e.errno in (errno.EWOULDBLOCK, errno.EAGAIN, errno.EACCES):
                raise LockHeldError(str(self.path)) from e
            raise

        # Owner pid for operators; the lock does not depend on it
        try:
            handle.seek(0)
            handle.truncate()
            handle.write(f"{os.getpid()}\n")
            handle.flush()
        except OSError as e:
            logger.debug(f"Could not record pid in {self.path}: {e}")
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "ConcurrencyGuard":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
