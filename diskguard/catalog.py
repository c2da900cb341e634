"""
Reclamation catalog for diskguard.

The fixed, ordered list of cleanup steps. Steps are independent: none reads
another's outcome, so any of them may fail without affecting the rest.
The catalog is a generator so tool detection happens right before each step
runs.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from diskguard.config import GuardConfig
from diskguard.docker import DockerCli, prune_commands, prune_unused_volumes
from diskguard.runner import Action, Command
from diskguard.sweep import (
    SweepStats,
    delete_empty_dirs,
    delete_old_files,
    is_rotated_log,
    truncate_large_logs,
)

logger = logging.getLogger(__name__)

# First available manager wins; only one purge runs per host.
PACKAGE_MANAGERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("apt-get", ("apt-get", "clean")),
    ("dnf", ("dnf", "-y", "clean", "all")),
    ("yum", ("yum", "-y", "clean", "all")),
)


@dataclass(frozen=True)
class ReclamationStep:
    """A titled action plus the conditions under which it applies."""

    title: str
    action: Action
    requires: tuple[str, ...] = ()
    enabled: bool = True


def package_cache_step(which: Callable[[str], str | None]) -> ReclamationStep | None:
    """Purge step for the first package manager found, or None."""
    for binary, argv in PACKAGE_MANAGERS:
        if which(binary):
            command = Command(argv)
            return ReclamationStep(title=str(command), action=command, requires=(binary,))
    return None


def journal_step(config: GuardConfig) -> ReclamationStep:
    """Vacuum by size when a size limit is set, otherwise by age."""
    if config.journal_max_size:
        title = f"journalctl vacuum {config.journal_max_size}"
        argv = ("journalctl", f"--vacuum-size={config.journal_max_size}")
    else:
        title = f"journalctl vacuum {config.journal_retain_days}d"
        argv = ("journalctl", f"--vacuum-time={config.journal_retain_days}d")
    return ReclamationStep(title=title, action=Command(argv), requires=("journalctl",))


def _sweep(label: str, sweep: Callable[[], SweepStats]) -> Callable[[], int]:
    def action() -> int:
        stats = sweep()
        logger.debug(
            f"{label}: {stats.removed} removed, {stats.bytes_freed // 1024}KB, {stats.errors} errors"
        )
        return stats.exit_code

    return action


def temp_steps(config: GuardConfig) -> list[ReclamationStep]:
    """Files then empty directories, root by root."""
    days = config.tmp_retain_days
    steps = []
    for root in config.tmp_roots:
        steps.append(
            ReclamationStep(
                title=f"{root} files older than {days}d",
                action=_sweep(root, lambda root=root: delete_old_files(root, days)),
            )
        )
        steps.append(
            ReclamationStep(
                title=f"{root} empty dirs older than {days}d",
                action=_sweep(root, lambda root=root: delete_empty_dirs(root, days)),
            )
        )
    return steps


def log_archive_step(config: GuardConfig) -> ReclamationStep:
    days = config.log_archive_retain_days
    root = config.log_root
    return ReclamationStep(
        title=f"{root} rotated logs older than {days}d",
        action=_sweep(root, lambda: delete_old_files(root, days, match=is_rotated_log)),
    )


def docker_log_step(config: GuardConfig) -> ReclamationStep:
    mb = config.docker_log_max_mb

    def action() -> int:
        stats = truncate_large_logs(config.docker_containers_dir, config.docker_log_max_bytes)
        logger.info(f"Docker logs truncated (> {mb}MB): {stats.removed}")
        return stats.exit_code

    return ReclamationStep(
        title=f"docker log truncation (> {mb}MB)",
        action=action,
        enabled=config.truncate_docker_logs,
    )


def docker_prune_steps(config: GuardConfig) -> list[ReclamationStep]:
    return [
        ReclamationStep(title=title, action=command, requires=("docker",), enabled=config.prune_docker)
        for title, command in prune_commands(config.docker_prune_until_hours)
    ]


def docker_volume_step(config: GuardConfig) -> ReclamationStep:
    hours = config.docker_prune_until_hours

    def action() -> int:
        cli = DockerCli(search_path=config.search_path)
        removed = prune_unused_volumes(hours, config.protect_volume_regex, cli=cli)
        logger.info(f"Docker volumes pruned (unused, > {hours}h): {removed}")
        return 0

    return ReclamationStep(
        title=f"docker volume prune (unused > {hours}h)",
        action=action,
        requires=("docker",),
        enabled=config.prune_docker and config.prune_docker_volumes,
    )


def iter_catalog(
    config: GuardConfig, which: Callable[[str], str | None]
) -> Iterator[ReclamationStep]:
    """
    Yield the reclamation steps in execution order.

    Args:
        config: Resolved configuration
        which: Tool lookup used to pick the package manager

    Yields:
        ReclamationStep descriptors; the runner checks each one's
        applicability before executing it
    """
    package_step = package_cache_step(which)
    if package_step is not None:
        yield package_step
    yield journal_step(config)
    yield from temp_steps(config)
    yield log_archive_step(config)
    yield docker_log_step(config)
    yield from docker_prune_steps(config)
    yield docker_volume_step(config)
