"""
Configuration for diskguard.

Settings are resolved once per run from the process environment (the
scheduler passes them as KEY=value pairs on the cron line). An optional
env file can pre-seed values; the process environment always wins.

Malformed or negative values never abort a run: they fall back to the
default and a warning is logged.
"""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = "/etc/default/disk-cleanup"
DEFAULT_LOCK_PATH = "/var/lock/disk-cleanup.lock"
DEFAULT_PROTECT_VOLUME_REGEX = r"^prod_|^backup_"
LOG_SINKS = ("auto", "syslog", "stderr")

# cron runs with a minimal PATH; the cleanup tools mostly live in sbin.
CRON_EXTRA_PATH = ("/usr/sbin", "/sbin", "/usr/local/sbin", "/usr/local/bin")

# (env key, attr name) for non-negative integer settings. Defaults come from
# the dataclass fields below.
_INT_FIELDS: tuple[tuple[str, str], ...] = (
    ("THRESHOLD_GB", "threshold_gb"),
    ("INODE_LOW_PCT", "inode_low_pct"),
    ("JOURNAL_RETAIN_DAYS", "journal_retain_days"),
    ("TMP_RETAIN_DAYS", "tmp_retain_days"),
    ("LOG_ARCHIVE_RETAIN_DAYS", "log_archive_retain_days"),
    ("DOCKER_PRUNE_UNTIL_HOURS", "docker_prune_until_hours"),
    ("DOCKER_LOG_MAX_MB", "docker_log_max_mb"),
)

_BOOL_FIELDS: tuple[tuple[str, str], ...] = (
    ("PRUNE_DOCKER", "prune_docker"),
    ("PRUNE_DOCKER_VOLUMES", "prune_docker_volumes"),
    ("TRUNCATE_DOCKER_LOGS", "truncate_docker_logs"),
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}

# journalctl --vacuum-size accepts a byte count with an optional K/M/G/T suffix
_SIZE_RE = re.compile(r"^(\d+)([KMGT])?$", re.IGNORECASE)


@dataclass(frozen=True)
class GuardConfig:
    """Immutable settings for one cleanup run."""

    threshold_gb: int = 10
    target_path: str = "/"
    inode_low_pct: int = 2
    journal_retain_days: int = 7
    # Normalized size string ("200M"), None when size-based vacuum is off
    journal_max_size: str | None = None
    tmp_retain_days: int = 7
    log_archive_retain_days: int = 14
    prune_docker: bool = False
    prune_docker_volumes: bool = False
    docker_prune_until_hours: int = 168
    truncate_docker_logs: bool = False
    docker_log_max_mb: int = 100
    protect_volume_regex: str = DEFAULT_PROTECT_VOLUME_REGEX
    lock_path: str = DEFAULT_LOCK_PATH
    log_sink: str = "auto"
    search_path: str = os.pathsep.join(("/usr/bin", "/bin") + CRON_EXTRA_PATH)
    tmp_roots: tuple[str, ...] = ("/tmp", "/var/tmp")
    log_root: str = "/var/log"
    docker_containers_dir: str = "/var/lib/docker/containers"

    @property
    def threshold_kb(self) -> int:
        return self.threshold_gb * 1024 * 1024

    @property
    def docker_log_max_bytes(self) -> int:
        return self.docker_log_max_mb * 1024 * 1024

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tmp_roots"] = list(self.tmp_roots)
        return data

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        env_file: str | None = None,
    ) -> "GuardConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            env_file: Optional KEY=value file read before the environment.
                Defaults to DISK_CLEANUP_ENV_FILE or /etc/default/disk-cleanup.

        Returns:
            Resolved GuardConfig
        """
        env = dict(os.environ if environ is None else environ)
        env = {**_read_env_file(env_file or env.get("DISK_CLEANUP_ENV_FILE", DEFAULT_ENV_FILE)), **env}

        defaults = cls()
        kwargs: dict[str, Any] = {}

        for key, attr in _INT_FIELDS:
            kwargs[attr] = _get_int(env, key, getattr(defaults, attr))

        for key, attr in _BOOL_FIELDS:
            kwargs[attr] = _get_bool(env, key, getattr(defaults, attr))

        target = env.get("TARGET_PATH", "").strip()
        kwargs["target_path"] = target or defaults.target_path
        kwargs["journal_max_size"] = _get_size(env, "JOURNAL_MAX_SIZE")
        kwargs["protect_volume_regex"] = _get_regex(env, "PROTECT_VOLUME_REGEX", defaults.protect_volume_regex)
        kwargs["lock_path"] = env.get("DISK_CLEANUP_LOCK", "").strip() or defaults.lock_path

        sink = env.get("DISK_CLEANUP_LOG", defaults.log_sink).strip().lower()
        if sink not in LOG_SINKS:
            logger.warning(f"Ignoring DISK_CLEANUP_LOG={sink!r}; expected one of {', '.join(LOG_SINKS)}")
            sink = defaults.log_sink
        kwargs["log_sink"] = sink
        kwargs["search_path"] = build_search_path(env.get("PATH", ""))

        return cls(**kwargs)


def build_search_path(path: str) -> str:
    """Append the sbin directories cron usually leaves out of PATH."""
    parts = [p for p in path.split(os.pathsep) if p]
    for extra in CRON_EXTRA_PATH:
        if extra not in parts:
            parts.append(extra)
    return os.pathsep.join(parts)


def _read_env_file(path: str) -> dict[str, str]:
    if not path or not os.path.isfile(path):
        return {}
    try:
        values = dotenv_values(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read env file {path}: {e}")
        return {}
    return {k: v for k, v in values.items() if v is not None}


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {key}={raw!r}: not an integer, using {default}")
        return default
    if value < 0:
        logger.warning(f"Ignoring {key}={raw!r}: negative, using {default}")
        return default
    return value


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring {key}={raw!r}: expected 0 or 1")
    return default


def _get_size(env: Mapping[str, str], key: str) -> str | None:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    match = _SIZE_RE.match(raw)
    if not match:
        logger.warning(f"Ignoring {key}={raw!r}: expected a size such as 200M")
        return None
    number, unit = match.groups()
    if int(number) == 0:
        return None
    return f"{int(number)}{(unit or '').upper()}"


def _get_regex(env: Mapping[str, str], key: str, default: str) -> str:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        re.compile(raw)
    except re.error as e:
        logger.warning(f"Ignoring {key}={raw!r}: {e}")
        return default
    return raw
