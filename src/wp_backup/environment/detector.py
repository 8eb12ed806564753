"""Detect whether the site's database runs in Docker or natively.

Detection is heuristic and never fails: a missing or broken ``docker``
installation simply means the native path is used.

Signals, in order:
1. A compose file in the site root or up to ``compose_search_levels``
   parents that mentions ``mariadb`` or ``mysql``.
2. A running container whose name contains a WordPress/database keyword.
   This yields a containerized descriptor without a compose directory,
   which the resolver rejects unless the operator supplies one.

Usage:
    from wp_backup.environment.detector import detect_environment

    env = detect_environment("/srv/site/html", runner, settings)
    if env.is_containerized:
        ...
"""

import logging
from pathlib import Path

from wp_backup.config.models import ToolSettings
from wp_backup.environment.models import Dialect, EnvironmentDescriptor
from wp_backup.shell import CommandRunner

logger = logging.getLogger(__name__)


def find_compose_file(
    start_dir: str | Path,
    settings: ToolSettings,
) -> Path | None:
    """Search ``start_dir`` and its parents for a compose file.

    Looks at ``start_dir`` plus at most ``settings.compose_search_levels``
    parents, stopping early at the filesystem root.  The directory need not
    exist (restore targets often don't yet).

    Returns:
        Path of the first compose file found, or ``None``.
    """
    current = Path(start_dir).absolute()
    for _ in range(settings.compose_search_levels + 1):
        for name in settings.compose_filenames:
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def compose_mentions_database(compose_file: Path) -> bool:
    """True if the compose file mentions any supported dialect."""
    try:
        text = compose_file.read_text(encoding="utf-8", errors="replace").lower()
    except OSError as e:
        logger.warning("Could not read %s: %s", compose_file, e)
        return False
    return any(d.value in text for d in Dialect)


def list_running_containers(runner: CommandRunner, settings: ToolSettings) -> list[str] | None:
    """Names of running containers, or ``None`` if docker is unusable."""
    if not runner.which(settings.docker_binary):
        return None
    result = runner.run([settings.docker_binary, "ps", "--format", "{{.Names}}"])
    if not result.ok:
        logger.debug("docker ps failed: %s", result.stderr.strip())
        return None
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def detect_environment(
    site_dir: str | Path,
    runner: CommandRunner,
    settings: ToolSettings,
    compose_override: str | Path | None = None,
) -> EnvironmentDescriptor:
    """Decide between the containerized and native database paths.

    Args:
        site_dir: WordPress root directory (may not exist yet on restore).
        runner: Command runner used for the ``docker ps`` probe.
        settings: Search depth, file names and container keywords.
        compose_override: Operator-supplied compose directory.  Skips the
            search and forces the containerized path.

    Returns:
        ``EnvironmentDescriptor`` with ``dialect`` and ``container_name``
        still unresolved.
    """
    logger.info("Checking for Docker environment...")

    if compose_override is not None:
        compose_dir = Path(compose_override).absolute()
        logger.info("Using compose directory: %s", compose_dir)
        return EnvironmentDescriptor(is_containerized=True, compose_directory=compose_dir)

    compose_file = find_compose_file(site_dir, settings)
    if compose_file is not None:
        logger.info("Found compose file at: %s", compose_file)
        if compose_mentions_database(compose_file):
            logger.info("Detected Docker environment with database service")
            return EnvironmentDescriptor(
                is_containerized=True,
                compose_directory=compose_file.parent,
            )

    containers = list_running_containers(runner, settings) or []
    keywords = [k.lower() for k in settings.container_keywords]
    matching = [
        name for name in containers
        if any(k in name.lower() for k in keywords)
    ]
    if matching:
        logger.info(
            "Found WordPress-related Docker containers running: %s",
            ", ".join(matching),
        )
        return EnvironmentDescriptor(is_containerized=True)

    logger.info("No Docker environment detected, using native database services")
    return EnvironmentDescriptor(is_containerized=False)
