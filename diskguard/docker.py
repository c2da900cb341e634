"""
Docker reclamation for diskguard.

The container/image/network prunes rely on the docker CLI's own ``until``
filter, which never touches running containers. Volumes get custom handling:
``docker volume prune`` has no age filter and no name protection, so unused
volumes are listed, vetted and removed one by one.
"""

import logging
import os
import re
import subprocess
from datetime import datetime, timedelta, timezone

from diskguard.errors import DockerError
from diskguard.runner import EXIT_NOT_FOUND, Command

logger = logging.getLogger(__name__)

# Legacy CreatedAt rendering: "2016-06-01 12:00:00 +0000 UTC"
_LEGACY_CREATED_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}) (\d{2}:\d{2}:\d{2}(?:\.\d+)?) ([+-]\d{4})(?: \w+)?$")
_FRACTION_RE = re.compile(r"\.(\d+)")


def prune_commands(hours: int) -> list[tuple[str, Command]]:
    """Container, image and network prunes, oldest-first by the until filter."""
    until = f"until={hours}h"
    return [
        (
            f"docker container prune (> {hours}h)",
            Command(("docker", "container", "prune", "-f", "--filter", until)),
        ),
        (
            f"docker image prune (> {hours}h)",
            Command(("docker", "image", "prune", "-af", "--filter", until)),
        ),
        (
            f"docker network prune (> {hours}h)",
            Command(("docker", "network", "prune", "-f", "--filter", until)),
        ),
    ]


def _normalize_fraction(value: str) -> str:
    # fromisoformat wants exactly 3 or 6 fractional digits on older Pythons;
    # docker emits nanoseconds.
    return _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)


def parse_created_at(value: str) -> datetime | None:
    """
    Parse a volume CreatedAt value into an aware datetime.

    Returns None when the value cannot be parsed; such volumes are never
    removed.
    """
    text = (value or "").strip()
    if not text:
        return None

    legacy = _LEGACY_CREATED_RE.match(text)
    try:
        if legacy:
            day, clock, offset = legacy.groups()
            clock = _normalize_fraction(clock) if "." in clock else clock + ".000000"
            parsed = datetime.strptime(f"{day} {clock} {offset}", "%Y-%m-%d %H:%M:%S.%f %z")
        else:
            if text[-1] in "Zz":
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(_normalize_fraction(text))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DockerCli:
    """Thin wrapper over the docker binary for volume housekeeping."""

    def __init__(self, binary: str = "docker", search_path: str | None = None):
        self.binary = binary
        self.search_path = search_path

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        env = None
        if self.search_path is not None:
            env = dict(os.environ)
            env["PATH"] = self.search_path
        return subprocess.run(
            [self.binary, *args],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            env=env,
            check=False,
        )

    def dangling_volumes(self) -> list[str]:
        """Names of volumes not referenced by any container."""
        args = ["volume", "ls", "-q", "--filter", "dangling=true"]
        try:
            result = self._run(*args)
        except FileNotFoundError as e:
            raise DockerError([self.binary, *args], EXIT_NOT_FOUND) from e
        if result.returncode != 0:
            raise DockerError([self.binary, *args], result.returncode)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def volume_created_at(self, name: str) -> str | None:
        try:
            result = self._run("volume", "inspect", "-f", "{{.CreatedAt}}", name)
        except OSError:
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def remove_volume(self, name: str) -> bool:
        try:
            result = self._run("volume", "rm", name)
        except OSError:
            return False
        return result.returncode == 0


def prune_unused_volumes(
    age_hours: int,
    protect_pattern: str,
    cli: DockerCli | None = None,
    now: datetime | None = None,
) -> int:
    """
    Remove dangling volumes older than *age_hours*, sparing protected names.

    Protection is checked before anything else: a volume whose name matches
    *protect_pattern* is never removed. Volumes with an unreadable creation
    time are skipped, and individual removal failures are ignored.

    Args:
        age_hours: Minimum age in hours
        protect_pattern: Regular expression searched in the volume name
        cli: DockerCli to use (defaults to the docker binary on PATH)
        now: Reference time (defaults to the current UTC time)

    Returns:
        Number of volumes removed

    Raises:
        DockerError: The volume listing itself failed
    """
    cli = cli or DockerCli()
    protect = re.compile(protect_pattern)
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=age_hours)

    removed = 0
    for name in cli.dangling_volumes():
        if protect.search(name):
            logger.debug(f"Keeping protected volume {name}")
            continue
        created = parse_created_at(cli.volume_created_at(name) or "")
        if created is None:
            logger.debug(f"Keeping volume {name}: creation time unknown")
            continue
        if created < cutoff and cli.remove_volume(name):
            removed += 1
    return removed
