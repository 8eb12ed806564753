"""Resolve the dialect and connection target of a detected environment.

Containerized sites are resolved from their compose file by text matching:
the dialect is the first supported keyword present (MariaDB before MySQL)
and the container is the ``container_name`` declared near that keyword, or
failing that the service key the keyword belongs to.

Native sites are resolved by the ordered probes in
``wp_backup.environment.probes``, falling back to MySQL with a
low-confidence warning.

Usage:
    from wp_backup.environment.resolver import (
        resolve_environment,
        ensure_container_running,
        check_dependencies,
    )

    env = resolve_environment(detected, runner, settings)
    check_dependencies(env, "backup", runner, settings)
    if env.is_containerized:
        ensure_container_running(env.container_name, runner, settings)
"""

import logging
import re
from pathlib import Path
from typing import Literal, Sequence

from wp_backup.config.models import ToolSettings
from wp_backup.environment.models import Dialect, EnvironmentDescriptor
from wp_backup.environment.probes import FALLBACK_DIALECT, NATIVE_PROBES, DialectProbe
from wp_backup.errors import (
    ContainerNotRunning,
    ContainerResolutionError,
    DependencyMissing,
    EnvironmentDetectionFailed,
)
from wp_backup.shell import CommandRunner

logger = logging.getLogger(__name__)

_BARE_KEY = re.compile(r"^(\s*)([A-Za-z0-9_.-]+)\s*:\s*(#.*)?$")
_CONTAINER_NAME = re.compile(r"^\s*container_name\s*:\s*(.+?)\s*$")
_IMAGE_LINE = re.compile(r"^\s*image\s*:")


# ============================================================================
# Compose file analysis
# ============================================================================


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _is_content(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def _ancestor_keys(lines: list[str], index: int) -> list[tuple[int, str]]:
    """Enclosing ``key:`` lines of ``lines[index]``, nearest first.

    Returns ``(line_index, key)`` pairs.  A bare key on the line itself
    counts as its own nearest ancestor.
    """
    chain: list[tuple[int, str]] = []
    match = _BARE_KEY.match(lines[index])
    if match:
        chain.append((index, match.group(2)))
    limit = _indent(lines[index])

    for j in range(index - 1, -1, -1):
        line = lines[j]
        if not _is_content(line):
            continue
        ind = _indent(line)
        if ind >= limit:
            continue
        match = _BARE_KEY.match(line)
        if match:
            chain.append((j, match.group(2)))
        limit = ind
        if ind == 0:
            break
    return chain


def _service_of(lines: list[str], index: int) -> tuple[int, str] | None:
    """The service block enclosing ``lines[index]``.

    Prefers the direct child of a ``services:`` key; otherwise the nearest
    enclosing key.
    """
    chain = _ancestor_keys(lines, index)
    if not chain:
        return None
    for pos, (_, key) in enumerate(chain):
        if key == "services" and pos > 0:
            return chain[pos - 1]
    return chain[0]


def _block_end(lines: list[str], start: int) -> int:
    """Index one past the last line of the block opened at ``start``."""
    base = _indent(lines[start])
    for j in range(start + 1, len(lines)):
        if _is_content(lines[j]) and _indent(lines[j]) <= base:
            return j
    return len(lines)


def detect_compose_dialect(compose_text: str) -> Dialect | None:
    """First supported dialect mentioned in the compose text (case-insensitive).

    MariaDB is checked before MySQL, so a file mentioning both resolves to
    MariaDB.
    """
    lowered = compose_text.lower()
    for dialect in Dialect:
        if dialect.value in lowered:
            return dialect
    return None


def find_container_name(
    compose_text: str,
    dialect: Dialect,
    window_before: int = 5,
    window_after: int = 10,
) -> str | None:
    """Find the database container name in compose text.

    Every line mentioning the dialect keyword is a candidate.  An ``image:``
    line naming the dialect settles the answer on its own service block:
    that block's ``container_name:`` (searched within ``window_before``
    lines before and ``window_after`` lines after the image line) or else
    its service key.  Names from other services are never used then.

    Without such an image line, the first ``container_name:`` inside the
    window of any candidate wins, clipped to the candidate's service block
    when one can be identified.  If none has one, the service key
    enclosing the first candidate is returned.

    Args:
        compose_text: Contents of the compose file.
        dialect: Dialect whose keyword anchors the search.
        window_before: Lines searched above each keyword line.
        window_after: Lines searched below each keyword line.

    Returns:
        Container or service name, or ``None``.
    """
    lines = compose_text.splitlines()
    keyword = dialect.value
    hits = [i for i, line in enumerate(lines) if keyword in line.lower()]
    if not hits:
        return None

    def window(hit: int, service: tuple[int, str] | None) -> str | None:
        lo = max(0, hit - window_before)
        hi = min(len(lines), hit + window_after + 1)
        if service is not None:
            lo = max(lo, service[0])
            hi = min(hi, _block_end(lines, service[0]))
        for j in range(lo, hi):
            match = _CONTAINER_NAME.match(lines[j])
            if match:
                name = match.group(1).split(" #", 1)[0].strip().strip("\"'")
                if name:
                    return name
        return None

    for hit in hits:
        if not _IMAGE_LINE.match(lines[hit]):
            continue
        service = _service_of(lines, hit)
        if service is not None:
            return window(hit, service) or service[1]

    for hit in hits:
        name = window(hit, _service_of(lines, hit))
        if name:
            return name

    service = _service_of(lines, hits[0])
    return service[1] if service else None


def compose_file_in(compose_dir: Path, settings: ToolSettings) -> Path | None:
    for name in settings.compose_filenames:
        candidate = compose_dir / name
        if candidate.is_file():
            return candidate
    return None


def resolve_container(
    descriptor: EnvironmentDescriptor,
    settings: ToolSettings,
    dialect_override: Dialect | None = None,
) -> EnvironmentDescriptor:
    """Fill in dialect and container name from the compose file.

    Raises:
        ContainerResolutionError: If no compose directory was detected, the
            compose file is missing, or no container name can be found.
        EnvironmentDetectionFailed: If the compose file mentions neither
            dialect.
    """
    if descriptor.compose_directory is None:
        raise ContainerResolutionError(
            "Database containers are running but no compose file was found; "
            "pass the compose directory explicitly"
        )

    compose_file = compose_file_in(descriptor.compose_directory, settings)
    if compose_file is None:
        raise ContainerResolutionError(
            f"No compose file found in {descriptor.compose_directory}"
        )

    logger.info("Analyzing %s for database configuration...", compose_file.name)
    text = compose_file.read_text(encoding="utf-8", errors="replace")

    if dialect_override is not None:
        dialect = dialect_override
        if dialect.value not in text.lower():
            raise EnvironmentDetectionFailed(
                f"{dialect.label} is not mentioned in {compose_file}"
            )
    else:
        dialect = detect_compose_dialect(text)
        if dialect is None:
            raise EnvironmentDetectionFailed(
                f"Could not detect database type (MariaDB/MySQL) in {compose_file}"
            )
    logger.info("Detected database type: %s", dialect.label)

    container = find_container_name(
        text,
        dialect,
        settings.container_window_before,
        settings.container_window_after,
    )
    if not container:
        raise ContainerResolutionError(
            f"Could not determine database container name from {compose_file}"
        )
    logger.info("Database container: %s", container)

    return descriptor.model_copy(update={"dialect": dialect, "container_name": container})


# ============================================================================
# Native dialect
# ============================================================================


def resolve_native_dialect(
    runner: CommandRunner,
    probes: Sequence[DialectProbe] = NATIVE_PROBES,
) -> tuple[Dialect, bool]:
    """Run the native probes in order.

    Returns:
        ``(dialect, confident)``.  ``confident`` is ``False`` when every
        probe was inconclusive and the fallback dialect was chosen.
    """
    logger.info("Attempting to auto-detect native database service...")
    for probe in probes:
        dialect = probe.detect(runner)
        if dialect is not None:
            logger.info("Detected %s from %s", dialect.label, probe.source)
            return dialect, True

    logger.warning(
        "Could not auto-detect database service, defaulting to %s (low confidence)",
        FALLBACK_DIALECT.label,
    )
    return FALLBACK_DIALECT, False


def resolve_environment(
    descriptor: EnvironmentDescriptor,
    runner: CommandRunner,
    settings: ToolSettings,
    dialect_override: Dialect | None = None,
    probes: Sequence[DialectProbe] = NATIVE_PROBES,
) -> EnvironmentDescriptor:
    """Complete a detected descriptor with dialect and target.

    Args:
        descriptor: Output of ``detect_environment``.
        runner: Command runner for the native probes.
        settings: Tool settings (compose names, search windows).
        dialect_override: Operator-supplied dialect; skips native probing
            and the compose priority rule.
        probes: Native probe order (injectable for tests).

    Returns:
        Descriptor with ``dialect`` set, and ``container_name`` set when
        containerized.
    """
    if descriptor.is_containerized:
        return resolve_container(descriptor, settings, dialect_override)

    if dialect_override is not None:
        logger.info("Using database type: %s", dialect_override.label)
        return descriptor.model_copy(update={"dialect": dialect_override})

    dialect, confident = resolve_native_dialect(runner, probes)
    return descriptor.model_copy(
        update={"dialect": dialect, "dialect_confident": confident}
    )


# ============================================================================
# Pre-flight checks
# ============================================================================


def ensure_container_running(
    container_name: str,
    runner: CommandRunner,
    settings: ToolSettings,
) -> None:
    """Confirm ``container_name`` is in the running-container list.

    Raises:
        ContainerNotRunning: If it is absent or docker cannot be queried.
    """
    result = runner.run([settings.docker_binary, "ps", "--format", "{{.Names}}"])
    running = {line.strip() for line in result.stdout.splitlines()} if result.ok else set()
    if container_name not in running:
        raise ContainerNotRunning(
            f"Database container '{container_name}' is not running; "
            "start your containers first (docker compose up -d)"
        )


def _compose_available(runner: CommandRunner, settings: ToolSettings) -> bool:
    if runner.which("docker-compose"):
        return True
    return runner.run([settings.docker_binary, "compose", "version"]).ok


def check_dependencies(
    descriptor: EnvironmentDescriptor,
    operation: Literal["backup", "restore"],
    runner: CommandRunner,
    settings: ToolSettings,
) -> None:
    """Verify the external tools the operation needs are installed.

    Raises:
        DependencyMissing: Listing every missing tool.
    """
    missing: list[str] = []

    if descriptor.is_containerized:
        if not runner.which(settings.docker_binary):
            missing.append(settings.docker_binary)
            missing.append("docker-compose")
        elif not _compose_available(runner, settings):
            missing.append("docker-compose")
    else:
        dialect = descriptor.dialect or FALLBACK_DIALECT
        binary = dialect.dump_binary if operation == "backup" else dialect.client_binary
        if not runner.which(binary):
            missing.append(binary)

    if missing:
        raise DependencyMissing(missing)
