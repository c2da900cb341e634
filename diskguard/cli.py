"""
Command-line entry point for diskguard.

Configured through environment variables only; the scheduler invokes it as

    THRESHOLD_GB=20 PRUNE_DOCKER=1 disk-cleanup
"""

import argparse
import os
import sys

from rich.console import Console
from rich.table import Table

from diskguard import __version__
from diskguard.config import GuardConfig
from diskguard.engine import CleanupEngine
from diskguard.log import setup_logging

console = Console()

ENV_HELP = """
Environment Variables:
  THRESHOLD_GB              Free-space threshold in GB (default: 10)
  TARGET_PATH               Filesystem to check (default: /)
  INODE_LOW_PCT             Clean up when free inodes drop below this % (default: 2)
  JOURNAL_RETAIN_DAYS       Journal retention in days (default: 7)
  JOURNAL_MAX_SIZE          Journal size cap, e.g. 200M; overrides days (default: off)
  TMP_RETAIN_DAYS           Age of /tmp and /var/tmp entries to remove (default: 7)
  LOG_ARCHIVE_RETAIN_DAYS   Age of rotated logs to remove (default: 14)
  PRUNE_DOCKER              1 to prune old containers/images/networks (default: 0)
  PRUNE_DOCKER_VOLUMES      1 to also prune old unused volumes (default: 0)
  DOCKER_PRUNE_UNTIL_HOURS  Minimum age for Docker pruning (default: 168)
  TRUNCATE_DOCKER_LOGS      1 to truncate large container logs (default: 0)
  DOCKER_LOG_MAX_MB         Container log size that triggers truncation (default: 100)
  PROTECT_VOLUME_REGEX      Volume names never pruned (default: ^prod_|^backup_)
  DISK_CLEANUP_LOCK         Lock file (default: /var/lock/disk-cleanup.lock)
  DISK_CLEANUP_LOG          Log sink: auto, syslog or stderr (default: auto)
  DISK_CLEANUP_ENV_FILE     KEY=value file read first (default: /etc/default/disk-cleanup)
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="disk-cleanup",
        description="Reclaim disk space when free space or inodes run low",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=ENV_HELP,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log skipped steps and debug detail")
    parser.add_argument("--show-config", action="store_true", help="Print the resolved configuration and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def show_config(config: GuardConfig) -> None:
    """Print the resolved configuration as a table."""
    table = Table(title="disk-cleanup configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Configuration warnings need a sink before the final one is known
    setup_logging(os.environ.get("DISK_CLEANUP_LOG", "auto").strip().lower() or "auto", verbose=args.verbose)
    config = GuardConfig.from_env()

    if args.show_config:
        show_config(config)
        return 0

    setup_logging(config.log_sink, verbose=args.verbose)
    return CleanupEngine(config).run()


if __name__ == "__main__":
    sys.exit(main())
