"""
Step runner for diskguard.

Runs one reclamation action at a time. Output of the action never reaches
the log transcript; only its exit status is kept. A failing step is logged
and recorded, never raised, so the remaining steps still run.
"""

import logging
import os
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from diskguard.catalog import ReclamationStep

logger = logging.getLogger(__name__)

# Shell conventions for commands that could not be started
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


class StepStatus(Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    title: str
    status: StepStatus
    exit_code: int | None = None


@dataclass(frozen=True)
class Command:
    """An external command run with its output discarded."""

    argv: tuple[str, ...]

    def __str__(self) -> str:
        return " ".join(self.argv)


Action = Union[Command, Callable[[], int]]


class StepRunner:
    """Executes actions with output suppression and per-step error isolation."""

    def __init__(self, search_path: str | None = None):
        """
        Args:
            search_path: PATH used to find and run external tools
                (defaults to the current PATH)
        """
        self.search_path = search_path if search_path is not None else os.environ.get("PATH", "")

    def which(self, tool: str) -> str | None:
        return shutil.which(tool, path=self.search_path)

    def run(self, title: str, action: Action) -> StepResult:
        """Run *action*, logging start and outcome. Never raises."""
        logger.info(f"Starting: {title}")
        code = self._execute(action)
        if code == 0:
            logger.info(f"Done: {title}")
            return StepResult(title=title, status=StepStatus.DONE, exit_code=0)
        logger.warning(f"FAILED ({code}): {title}")
        return StepResult(title=title, status=StepStatus.FAILED, exit_code=code)

    def run_step(self, step: "ReclamationStep") -> StepResult:
        """Check applicability right before running; skipped steps are not started."""
        if not step.enabled:
            logger.debug(f"Skipped: {step.title} (disabled)")
            return StepResult(title=step.title, status=StepStatus.SKIPPED)
        missing = [tool for tool in step.requires if self.which(tool) is None]
        if missing:
            logger.debug(f"Skipped: {step.title} ({', '.join(missing)} not found)")
            return StepResult(title=step.title, status=StepStatus.SKIPPED)
        return self.run(step.title, step.action)

    def _execute(self, action: Action) -> int:
        if isinstance(action, Command):
            return self._run_command(action)
        try:
            return int(action())
        except Exception as e:
            logger.debug(f"Action raised {type(e).__name__}: {e}", exc_info=True)
            return getattr(e, "returncode", None) or 1

    def _run_command(self, command: Command) -> int:
        env = dict(os.environ)
        env["PATH"] = self.search_path
        try:
            completed = subprocess.run(
                list(command.argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=env,
                check=False,
            )
        except FileNotFoundError:
            return EXIT_NOT_FOUND
        except PermissionError:
            return EXIT_NOT_EXECUTABLE
        except OSError as e:
            logger.debug(f"Could not start {command}: {e}")
            return 1
        return completed.returncode
