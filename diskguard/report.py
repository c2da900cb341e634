"""Run report: the before/after comparison logged at the end of every run."""

import logging
from dataclasses import dataclass, field
from enum import Enum

from diskguard.config import GuardConfig
from diskguard.probe import SpaceSample, kb_to_gb
from diskguard.runner import StepResult, StepStatus
from diskguard.trigger import Decision, describe, space_ok

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    RECOVERED = "recovered"
    STILL_LOW = "still-low"


@dataclass
class RunOutcome:
    decision: Decision
    before: SpaceSample
    after: SpaceSample | None
    status: RunStatus
    steps: list[StepResult] = field(default_factory=list)

    @property
    def freed_kb(self) -> int:
        """Signed change in available space; negative if usage grew meanwhile."""
        if self.after is None:
            return 0
        return self.after.available_kb - self.before.available_kb

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if s.status is StepStatus.FAILED]


def build_outcome(
    decision: Decision,
    before: SpaceSample,
    after: SpaceSample | None,
    config: GuardConfig,
    steps: list[StepResult] | None = None,
) -> RunOutcome:
    if after is not None and space_ok(after, config):
        status = RunStatus.RECOVERED
    else:
        status = RunStatus.STILL_LOW
    return RunOutcome(decision=decision, before=before, after=after, status=status, steps=list(steps or []))


def _where(config: GuardConfig, sample: SpaceSample) -> str:
    mount = sample.mountpoint
    if mount and mount != config.target_path:
        return f"{config.target_path} (mount {mount})"
    return config.target_path


def log_outcome(outcome: RunOutcome, config: GuardConfig) -> None:
    """Write the report lines for *outcome* to the log sink.

    Both paths end with the freed delta and a status line; an untriggered
    run is preceded by its "Free space OK" line.
    """
    freed = outcome.freed_kb

    if not outcome.decision.triggered:
        logger.info(describe(outcome.decision, outcome.before, config))

    if outcome.failed_steps:
        logger.debug(f"{len(outcome.failed_steps)} of {len(outcome.steps)} steps failed")

    if outcome.after is None:
        logger.warning(f"Could not determine free space for {config.target_path} after cleanup")
        return

    where = _where(config, outcome.after)
    before_gb = outcome.before.available_gb
    after_gb = outcome.after.available_gb
    logger.info(f"Freed: {kb_to_gb(freed)}GB ({freed}KB); before {before_gb}GB, after {after_gb}GB on {where}")

    if outcome.status is RunStatus.RECOVERED:
        logger.info(f"Cleanup successful: {after_gb}GB >= {config.threshold_gb}GB on {where}")
    else:
        logger.info(f"Cleanup done but still low: {after_gb}GB < {config.threshold_gb}GB on {where}")
