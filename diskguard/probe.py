"""
Metrics probe for diskguard.

Reads free space and inode headroom for the filesystem holding a path.
Space is reported in 1 KiB units, matching ``df -Pk`` "Available".
"""

import logging
import os
from dataclasses import dataclass

import psutil

from diskguard.errors import ProbeError

logger = logging.getLogger(__name__)

BLOCK_SIZE = 1024
KB_PER_GB = 1024 * 1024


def kb_to_gb(kb: int) -> int:
    """Whole gigabytes in *kb*, truncating toward zero (also for negatives)."""
    gb = abs(kb) // KB_PER_GB
    return -gb if kb < 0 else gb


@dataclass(frozen=True)
class SpaceSample:
    """Free space and inode counts for one filesystem at one instant."""

    available_kb: int
    total_inodes: int
    available_inodes: int
    mountpoint: str | None = None

    @classmethod
    def empty(cls) -> "SpaceSample":
        return cls(available_kb=0, total_inodes=0, available_inodes=0)

    @property
    def available_gb(self) -> int:
        return kb_to_gb(self.available_kb)

    @property
    def free_inode_pct(self) -> float | None:
        """Percentage of inodes still free, or None when the fs reports none."""
        if self.total_inodes <= 0:
            return None
        return 100.0 * self.available_inodes / self.total_inodes


def find_mountpoint(path: str) -> str | None:
    """Return the mountpoint of the partition holding *path*, if any."""
    real = os.path.realpath(path)
    try:
        partitions = psutil.disk_partitions(all=True)
    except (OSError, psutil.Error) as e:
        logger.debug(f"Could not list partitions: {e}")
        return None

    best: str | None = None
    for part in partitions:
        mount = part.mountpoint
        prefix = mount if mount.endswith(os.sep) else mount + os.sep
        if real == mount or real.startswith(prefix):
            if best is None or len(mount) > len(best):
                best = mount
    return best


def sample(path: str) -> SpaceSample:
    """
    Read space statistics for the filesystem holding *path*.

    Raises:
        ProbeError: path missing or the stat call failed
    """
    if not os.path.exists(path):
        raise ProbeError(path, "path does not exist")

    try:
        usage = psutil.disk_usage(path)
        st = os.statvfs(path)
    except OSError as e:
        raise ProbeError(path, str(e)) from e

    return SpaceSample(
        available_kb=usage.free // BLOCK_SIZE,
        total_inodes=st.f_files,
        available_inodes=st.f_ffree,
        mountpoint=find_mountpoint(path),
    )


def safe_sample(path: str) -> tuple[SpaceSample, ProbeError | None]:
    """Like sample(), but returns a zero sample and the error instead of raising."""
    try:
        return sample(path), None
    except ProbeError as e:
        logger.debug(f"Probe failed: {e}")
        return SpaceSample.empty(), e
