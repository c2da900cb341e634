"""
Cleanup engine for diskguard.

One invocation: take the lock, sample the target filesystem, decide, run
the catalog when needed, sample again and report. Only a failed first
sample makes the run fail.
"""

import logging
from collections.abc import Callable

from diskguard.catalog import iter_catalog
from diskguard.config import GuardConfig
from diskguard.errors import LockHeldError, ProbeError
from diskguard.lock import ConcurrencyGuard
from diskguard.probe import SpaceSample, safe_sample
from diskguard.report import RunOutcome, build_outcome, log_outcome
from diskguard.runner import StepResult, StepRunner
from diskguard.trigger import describe, evaluate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PROBE_FAILED = 1

Probe = Callable[[str], tuple[SpaceSample, ProbeError | None]]


class CleanupEngine:
    """Runs a single guarded cleanup sweep."""

    def __init__(
        self,
        config: GuardConfig,
        runner: StepRunner | None = None,
        probe: Probe = safe_sample,
        guard: ConcurrencyGuard | None = None,
    ):
        self.config = config
        self.runner = runner or StepRunner(search_path=config.search_path)
        self.probe = probe
        self.guard = guard or ConcurrencyGuard(config.lock_path)
        self.outcome: RunOutcome | None = None

    def run(self) -> int:
        """Run once under the lock. Returns the process exit code."""
        try:
            self.guard.acquire()
        except LockHeldError:
            logger.info("Another cleanup is running; exiting.")
            return EXIT_OK

        try:
            return self._run_locked()
        finally:
            self.guard.release()

    def reclaim(self) -> list[StepResult]:
        """Run every applicable catalog step in order, whatever their outcome."""
        return [self.runner.run_step(step) for step in iter_catalog(self.config, self.runner.which)]

    def _run_locked(self) -> int:
        path = self.config.target_path

        before, error = self.probe(path)
        if error is not None or before.available_kb == 0:
            logger.error(f"Could not determine free space for {path}")
            return EXIT_PROBE_FAILED

        decision = evaluate(before, self.config)
        steps: list[StepResult] = []
        if decision.triggered:
            logger.info(describe(decision, before, self.config))
            steps = self.reclaim()

        after, error = self.probe(path)
        if error is not None:
            logger.debug(f"Second sample failed: {error}")
        self.outcome = build_outcome(decision, before, None if error else after, self.config, steps)
        log_outcome(self.outcome, self.config)
        return EXIT_OK
