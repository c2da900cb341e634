"""
Tests for the disk-cleanup command line.
"""

import os
import subprocess
import sys
import unittest
from unittest.mock import patch

from diskguard.cli import build_parser, main


class TestCli(unittest.TestCase):
    def setUp(self):
        self.env = patch.dict(
            os.environ,
            {"DISK_CLEANUP_ENV_FILE": "/nonexistent/disk-cleanup", "THRESHOLD_GB": "25", "DISK_CLEANUP_LOG": "stderr"},
        )
        self.env.start()
        self.addCleanup(self.env.stop)

    @patch("diskguard.cli.setup_logging")
    @patch("diskguard.cli.CleanupEngine")
    def test_runs_engine_with_resolved_config(self, mock_engine, mock_logging):
        mock_engine.return_value.run.return_value = 0

        self.assertEqual(main([]), 0)

        config = mock_engine.call_args[0][0]
        self.assertEqual(config.threshold_gb, 25)
        self.assertEqual(config.log_sink, "stderr")
        mock_logging.assert_called_with("stderr", verbose=False)

    @patch("diskguard.cli.setup_logging")
    @patch("diskguard.cli.CleanupEngine")
    def test_exit_code_is_passed_through(self, mock_engine, mock_logging):
        mock_engine.return_value.run.return_value = 1
        self.assertEqual(main(["-v"]), 1)
        mock_logging.assert_called_with("stderr", verbose=True)

    @patch("diskguard.cli.setup_logging")
    @patch("diskguard.cli.CleanupEngine")
    @patch("diskguard.cli.console")
    def test_show_config(self, mock_console, mock_engine, mock_logging):
        self.assertEqual(main(["--show-config"]), 0)
        mock_console.print.assert_called_once()
        mock_engine.assert_not_called()

    def test_version(self):
        with self.assertRaises(SystemExit) as ctx:
            build_parser().parse_args(["--version"])
        self.assertEqual(ctx.exception.code, 0)

    def test_module_help(self):
        result = subprocess.run(
            [sys.executable, "-m", "diskguard", "--help"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        self.assertEqual(result.returncode, 0)
        self.assertIn("THRESHOLD_GB", result.stdout)
        self.assertIn("--show-config", result.stdout)


if __name__ == "__main__":
    unittest.main()
