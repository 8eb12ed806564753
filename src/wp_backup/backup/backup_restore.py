"""Backup and restore orchestration.

Sequences detection, resolution, credential extraction, dump/restore and
archive handling into the two end-to-end workflows.  Each operation owns one
temporary directory which is removed on every exit path.

Restore is a linear state machine::

    VALIDATING -> DETECTING_ENVIRONMENT -> EXTRACTING_CONFIG
        -> RESTORING_DATABASE -> RESTORING_FILES -> DONE

with ``FAILED`` reachable from any non-terminal state.  The archive is fully
validated before anything live is touched, and an existing site directory is
always moved aside (never deleted) before files are restored.

Usage:
    from wp_backup.backup.backup_restore import backup_site, restore_site

    result = backup_site("/var/www/html/wordpress", "/backups")
    print(result.archive_path)

    result = restore_site(result.archive_path, "/var/www/html/wordpress")
    print(result.previous_copy)
"""

import logging
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

from wp_backup.backup.archive import (
    extract_archive,
    package_archive,
    verify_archive,
    write_manifest,
)
from wp_backup.backup.models import (
    ARCHIVE_FILES_DIR,
    ARCHIVE_MANIFEST_FILE,
    ARCHIVE_SQL_FILE,
    BackupResult,
    RestoreResult,
    RestoreState,
)
from wp_backup.config.models import ToolSettings
from wp_backup.environment.detector import detect_environment
from wp_backup.environment.models import Dialect, EnvironmentDescriptor
from wp_backup.environment.resolver import (
    check_dependencies,
    ensure_container_running,
    resolve_environment,
)
from wp_backup.errors import ConfigNotFound, FileRestoreIOError, PackagingError
from wp_backup.factory import get_client
from wp_backup.shell import CommandRunner
from wp_backup.site_config import extract_site_config, find_config_file

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def archive_filename(site_dir: Path, now: datetime) -> str:
    """``<YYYYMMDD_HHMMSS>_<site folder name>.zip``."""
    return f"{now.strftime(TIMESTAMP_FORMAT)}_{site_dir.name}.zip"


def _prepare_environment(
    site_dir: Path,
    operation: str,
    runner: CommandRunner,
    settings: ToolSettings,
    compose_dir: Path | None,
    dialect: Dialect | None,
) -> EnvironmentDescriptor:
    detected = detect_environment(site_dir, runner, settings, compose_override=compose_dir)
    environment = resolve_environment(detected, runner, settings, dialect_override=dialect)
    if not environment.dialect_confident:
        logger.warning("Database service auto-detection may not be accurate")
    check_dependencies(environment, operation, runner, settings)
    return environment


# ============================================================================
# Backup
# ============================================================================


def backup_site(
    site_dir: str | Path,
    output_dir: str | Path | None = None,
    *,
    compose_dir: str | Path | None = None,
    dialect: Dialect | None = None,
    runner: CommandRunner | None = None,
    settings: ToolSettings | None = None,
    now: datetime | None = None,
) -> BackupResult:
    """Back up a WordPress site's files and database into one zip archive.

    Steps: validate the site, detect and resolve the environment, check
    tools, extract credentials, confirm the container is running
    (containerized only), dump the database, copy the files, write the
    manifest, package, then verify.  Verification failure is logged as a
    warning and reported in the result; the archive is kept.

    Args:
        site_dir: WordPress root directory (must contain ``wp-config.php``).
        output_dir: Directory for the archive (created if missing).
            Defaults to the current directory.
        compose_dir: Compose directory override; forces the Docker path.
        dialect: Dialect override; skips auto-detection.
        runner: Command runner (defaults to a ``CommandRunner`` using the
            settings' timeout).
        settings: Tool settings (defaults to ``ToolSettings()``).
        now: Timestamp for the archive name and manifest.

    Returns:
        ``BackupResult`` with the archive path and resolved environment.

    Raises:
        WPBackupError: Any fatal failure (see ``wp_backup.errors``).

    Example:
        result = backup_site("/var/www/html/wordpress", "/backups")
        # /backups/20250530_143022_wordpress.zip
    """
    settings = settings or ToolSettings()
    runner = runner or CommandRunner(timeout=settings.command_timeout)
    now = now or datetime.now()

    site_dir = Path(site_dir).expanduser().resolve()
    if not site_dir.is_dir():
        raise ConfigNotFound(f"WordPress directory does not exist: {site_dir}")
    find_config_file(site_dir)

    output_dir = Path(output_dir).expanduser() if output_dir else Path.cwd()
    if not output_dir.is_dir():
        logger.info("Creating output directory: %s", output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PackagingError(f"Failed to create output directory {output_dir}: {e}") from e
    output_dir = output_dir.resolve()

    environment = _prepare_environment(
        site_dir,
        "backup",
        runner,
        settings,
        Path(compose_dir) if compose_dir else None,
        dialect,
    )

    archive_path = output_dir / archive_filename(site_dir, now)
    logger.info("Starting WordPress backup of %s", site_dir)
    logger.info("Backup filename: %s", archive_path.name)
    logger.info("Environment: %s", environment.describe())

    with tempfile.TemporaryDirectory(prefix="wp-backup-") as tmp:
        staging = Path(tmp)
        files_root = staging / ARCHIVE_FILES_DIR
        files_root.mkdir()

        site_config = extract_site_config(site_dir)
        client = get_client(site_config, environment, runner, settings)
        if environment.is_containerized:
            ensure_container_running(environment.container_name, runner, settings)

        client.dump(staging / ARCHIVE_SQL_FILE)

        logger.info("Creating files backup...")
        try:
            shutil.copytree(site_dir, files_root / site_dir.name, symlinks=True)
        except (shutil.Error, OSError) as e:
            raise PackagingError(f"Failed to copy WordPress files: {e}") from e

        write_manifest(
            staging / ARCHIVE_MANIFEST_FILE,
            site_dir,
            environment,
            site_config,
            now,
        )

        size = package_archive(staging, archive_path)

    logger.info("Verifying backup integrity...")
    verified = verify_archive(archive_path)
    if verified:
        logger.info("Backup integrity verified successfully")
    else:
        logger.warning("Backup integrity verification failed")

    logger.info("Backup completed: %s", archive_path)
    return BackupResult(
        archive_path=archive_path,
        environment=environment,
        archive_size=size,
        verified=verified,
    )


# ============================================================================
# Restore
# ============================================================================


_NEXT_STATE: dict[RestoreState, RestoreState] = {
    RestoreState.VALIDATING: RestoreState.DETECTING_ENVIRONMENT,
    RestoreState.DETECTING_ENVIRONMENT: RestoreState.EXTRACTING_CONFIG,
    RestoreState.EXTRACTING_CONFIG: RestoreState.RESTORING_DATABASE,
    RestoreState.RESTORING_DATABASE: RestoreState.RESTORING_FILES,
    RestoreState.RESTORING_FILES: RestoreState.DONE,
}


class RestoreStateMachine:
    """Tracks restore progress; transitions are strictly forward."""

    def __init__(self) -> None:
        self.state = RestoreState.VALIDATING
        self.history: list[RestoreState] = [self.state]

    @property
    def finished(self) -> bool:
        return self.state in (RestoreState.DONE, RestoreState.FAILED)

    def advance(self, new_state: RestoreState) -> None:
        """Move to ``new_state``, which must be the next state in sequence."""
        if self.finished or _NEXT_STATE.get(self.state) is not new_state:
            raise RuntimeError(
                f"Invalid restore transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)
        logger.debug("Restore state: %s", new_state.value)

    def fail(self) -> None:
        """Enter ``FAILED``; the failing state stays visible in ``history``."""
        if self.finished:
            raise RuntimeError(f"Restore already finished in state {self.state.value}")
        self.state = RestoreState.FAILED
        self.history.append(RestoreState.FAILED)


def move_aside(target: Path, now: datetime) -> Path:
    """Rename an existing site directory to ``<dir>.backup.<timestamp>``.

    A numeric suffix is appended if that sibling already exists.

    Raises:
        FileRestoreIOError: If the rename fails.
    """
    base = f"{target.name}.backup.{now.strftime(TIMESTAMP_FORMAT)}"
    candidate = target.with_name(base)
    counter = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = target.with_name(f"{base}-{counter}")
        counter += 1

    logger.info("Creating backup of existing directory: %s", candidate)
    try:
        target.rename(candidate)
    except OSError as e:
        raise FileRestoreIOError(f"Failed to back up existing directory {target}: {e}") from e
    return candidate


def restore_files(source_dir: Path, target: Path, now: datetime) -> Path | None:
    """Replace ``target`` with a copy of ``source_dir``.

    An existing ``target`` is moved aside first, never deleted.

    Returns:
        Path the previous directory was moved to, or ``None`` if ``target``
        did not exist.

    Raises:
        FileRestoreIOError: If ``target`` is not a directory, or moving or
            copying fails.
    """
    logger.info("Restoring WordPress files...")
    previous: Path | None = None
    if target.exists() or target.is_symlink():
        if not target.is_dir():
            raise FileRestoreIOError(f"Target exists and is not a directory: {target}")
        logger.warning("Target directory exists. Contents will be replaced.")
        previous = move_aside(target, now)
    else:
        logger.info("Creating WordPress directory: %s", target)

    try:
        shutil.copytree(source_dir, target, symlinks=True)
    except (shutil.Error, OSError) as e:
        raise FileRestoreIOError(f"Failed to restore WordPress files: {e}") from e

    logger.info("WordPress files restored to: %s", target)
    return previous


def restore_site(
    archive_path: str | Path,
    site_dir: str | Path,
    *,
    compose_dir: str | Path | None = None,
    dialect: Dialect | None = None,
    runner: CommandRunner | None = None,
    settings: ToolSettings | None = None,
    now: datetime | None = None,
) -> RestoreResult:
    """Restore a WordPress site's database and files from a backup archive.

    The archive is extracted and validated first; an invalid archive aborts
    before detection runs and before the live site or database is touched.
    Credentials come from the ``wp-config.php`` inside the archive.

    Args:
        archive_path: Zip produced by ``backup_site``.
        site_dir: Target WordPress directory (need not exist).
        compose_dir: Compose directory override; forces the Docker path.
        dialect: Dialect override; skips auto-detection.
        runner: Command runner (defaults to a ``CommandRunner``).
        settings: Tool settings (defaults to ``ToolSettings()``).
        now: Timestamp used for the safety-net directory name.

    Returns:
        ``RestoreResult`` including where the previous site was moved.

    Raises:
        WPBackupError: Any fatal failure (see ``wp_backup.errors``).

    Example:
        result = restore_site(
            "/backups/20250530_143022_wordpress.zip",
            "/var/www/html/wordpress",
        )
    """
    settings = settings or ToolSettings()
    runner = runner or CommandRunner(timeout=settings.command_timeout)
    now = now or datetime.now()

    archive_path = Path(archive_path).expanduser().resolve()
    site_dir = Path(site_dir).expanduser().resolve()
    machine = RestoreStateMachine()

    logger.info("Starting WordPress restore from %s", archive_path)
    with tempfile.TemporaryDirectory(prefix="wp-restore-") as tmp:
        try:
            extracted = extract_archive(archive_path, Path(tmp))
            if extracted.manifest_text:
                logger.info("Backup info file found, displaying backup details:")
                for line in extracted.manifest_text.splitlines():
                    logger.info("  %s", line)

            machine.advance(RestoreState.DETECTING_ENVIRONMENT)
            environment = _prepare_environment(
                site_dir,
                "restore",
                runner,
                settings,
                Path(compose_dir) if compose_dir else None,
                dialect,
            )
            logger.info("Environment: %s", environment.describe())

            machine.advance(RestoreState.EXTRACTING_CONFIG)
            site_config = extract_site_config(extracted.site_dir)
            client = get_client(site_config, environment, runner, settings)

            machine.advance(RestoreState.RESTORING_DATABASE)
            if environment.is_containerized:
                ensure_container_running(environment.container_name, runner, settings)
            client.restore(extracted.sql_path)

            machine.advance(RestoreState.RESTORING_FILES)
            previous = restore_files(extracted.site_dir, site_dir, now)

            machine.advance(RestoreState.DONE)
        except BaseException:
            failed_in = machine.state
            machine.fail()
            logger.error("Restore failed while %s", failed_in.value.replace("_", " "))
            raise

    logger.info("WordPress restore completed successfully")
    if environment.is_containerized:
        logger.info("You may need to restart your Docker containers to apply changes.")
    return RestoreResult(
        site_dir=site_dir,
        environment=environment,
        database_name=site_config.db_name,
        previous_copy=previous,
        state=machine.state,
    )
