"""
Tests for the step runner.
"""

import logging
import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from diskguard.catalog import ReclamationStep
from diskguard.errors import DockerError
from diskguard.runner import (
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    Command,
    StepRunner,
    StepStatus,
)


@pytest.fixture
def runner():
    return StepRunner(search_path="/usr/bin:/bin")


class TestCommands:
    def test_success(self, runner):
        with patch("diskguard.runner.subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
            result = runner.run("apt-get clean", Command(("apt-get", "clean")))

        assert result.status is StepStatus.DONE
        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == ["apt-get", "clean"]
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert kwargs["stderr"] is subprocess.DEVNULL
        assert kwargs["env"]["PATH"] == "/usr/bin:/bin"
        assert kwargs["check"] is False

    def test_nonzero_exit_is_recorded(self, runner, caplog):
        caplog.set_level(logging.DEBUG, logger="diskguard")
        with patch("diskguard.runner.subprocess.run", return_value=MagicMock(returncode=3)):
            result = runner.run("journalctl vacuum 7d", Command(("journalctl", "--vacuum-time=7d")))

        assert result.status is StepStatus.FAILED
        assert result.exit_code == 3
        assert "Starting: journalctl vacuum 7d" in caplog.text
        assert "FAILED (3): journalctl vacuum 7d" in caplog.text

    def test_missing_binary(self, runner):
        with patch("diskguard.runner.subprocess.run", side_effect=FileNotFoundError):
            result = runner.run("x", Command(("nope",)))
        assert result.exit_code == EXIT_NOT_FOUND

    def test_not_executable(self, runner):
        with patch("diskguard.runner.subprocess.run", side_effect=PermissionError):
            result = runner.run("x", Command(("nope",)))
        assert result.exit_code == EXIT_NOT_EXECUTABLE

    def test_command_str(self):
        assert str(Command(("dnf", "-y", "clean", "all"))) == "dnf -y clean all"


class TestCallables:
    def test_zero_is_done(self, runner, caplog):
        caplog.set_level(logging.INFO, logger="diskguard")
        result = runner.run("sweep", lambda: 0)
        assert result.status is StepStatus.DONE
        assert "Done: sweep" in caplog.text

    def test_exception_becomes_failure(self, runner):
        def boom():
            raise RuntimeError("disk on fire")

        result = runner.run("sweep", boom)
        assert result.status is StepStatus.FAILED
        assert result.exit_code == 1

    def test_exception_return_code_is_kept(self, runner):
        def listing_failed():
            raise DockerError(["docker", "volume", "ls"], 5)

        assert runner.run("volumes", listing_failed).exit_code == 5


class TestApplicability:
    def test_disabled_step_is_not_started(self, runner):
        action = MagicMock(return_value=0)
        result = runner.run_step(ReclamationStep(title="off", action=action, enabled=False))
        assert result.status is StepStatus.SKIPPED
        action.assert_not_called()

    def test_missing_tool_skips(self, tmp_path):
        runner = StepRunner(search_path=str(tmp_path))
        action = MagicMock(return_value=0)
        step = ReclamationStep(title="needs tool", action=action, requires=("definitely-not-a-tool",))
        assert runner.run_step(step).status is StepStatus.SKIPPED
        action.assert_not_called()

    def test_present_tool_runs(self, tmp_path):
        tool = tmp_path / "mytool"
        tool.write_text("#!/bin/sh\nexit 0\n")
        os.chmod(tool, 0o755)
        runner = StepRunner(search_path=str(tmp_path))

        action = MagicMock(return_value=0)
        step = ReclamationStep(title="has tool", action=action, requires=("mytool",))
        assert runner.run_step(step).status is StepStatus.DONE
        action.assert_called_once()

    def test_failures_do_not_stop_later_steps(self, tmp_path):
        runner = StepRunner(search_path=str(tmp_path))
        steps = [
            ReclamationStep(title="first", action=MagicMock(side_effect=OSError("gone"))),
            ReclamationStep(title="second", action=MagicMock(return_value=2)),
            ReclamationStep(title="third", action=MagicMock(return_value=0)),
        ]
        results = [runner.run_step(step) for step in steps]
        assert [r.status for r in results] == [StepStatus.FAILED, StepStatus.FAILED, StepStatus.DONE]
        assert [r.exit_code for r in results] == [1, 2, 0]
