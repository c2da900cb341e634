"""Decides whether a run needs to reclaim space."""

from dataclasses import dataclass
from enum import Enum

from diskguard.config import GuardConfig
from diskguard.probe import SpaceSample


class TriggerReason(Enum):
    OK = "ok"
    SPACE_SHORT = "space-short"
    INODE_LOW = "inode-low"


@dataclass(frozen=True)
class Decision:
    triggered: bool
    reason: TriggerReason
    free_inode_pct: float | None = None


def space_ok(sample: SpaceSample, config: GuardConfig) -> bool:
    """Space-only comparison; a value exactly at the threshold passes."""
    return sample.available_kb >= config.threshold_kb


def evaluate(sample: SpaceSample, config: GuardConfig) -> Decision:
    """
    Combine the space and inode signals into one decision.

    Low inode headroom triggers a cleanup even when there is plenty of
    space. Filesystems that report no inode total are judged on space only.
    """
    pct = sample.free_inode_pct
    if pct is not None and pct < config.inode_low_pct:
        return Decision(triggered=True, reason=TriggerReason.INODE_LOW, free_inode_pct=pct)

    if space_ok(sample, config):
        return Decision(triggered=False, reason=TriggerReason.OK, free_inode_pct=pct)
    return Decision(triggered=True, reason=TriggerReason.SPACE_SHORT, free_inode_pct=pct)


def describe(decision: Decision, sample: SpaceSample, config: GuardConfig) -> str:
    """One-line log message for a decision."""
    where = config.target_path
    if decision.reason is TriggerReason.INODE_LOW:
        return (
            f"Low inode headroom detected: {decision.free_inode_pct:.1f}% free "
            f"< {config.inode_low_pct}% on {where}"
        )
    if decision.reason is TriggerReason.SPACE_SHORT:
        return f"Low free space detected: {sample.available_gb}GB < {config.threshold_gb}GB on {where}"
    return f"Free space OK: {sample.available_gb}GB >= {config.threshold_gb}GB on {where}"
