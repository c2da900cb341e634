"""Exception types raised inside diskguard.

Only ProbeError on the first sample is fatal for a run; the others are
handled at the engine or step-runner boundary.
"""


class DiskGuardError(Exception):
    """Base class for diskguard errors."""


class ProbeError(DiskGuardError):
    """Free-space statistics could not be read for a path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class LockHeldError(DiskGuardError):
    """Another process holds the cleanup lock."""


class DockerError(DiskGuardError):
    """A docker CLI call exited non-zero."""

    def __init__(self, args: list[str], returncode: int):
        self.returncode = returncode
        super().__init__(f"{' '.join(args)} exited with {returncode}")
