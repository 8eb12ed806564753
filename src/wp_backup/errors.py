"""Error taxonomy for backup and restore operations.

Every fatal condition raised by the library derives from ``WPBackupError``
so callers (the CLI in particular) can report it and exit non-zero without
catching unrelated exceptions.

Usage:
    from wp_backup.errors import WPBackupError, ConfigIncomplete

    try:
        backup_site(site_dir)
    except WPBackupError as e:
        print(f"Backup failed: {e}")
"""


class WPBackupError(Exception):
    """Base class for all backup/restore failures."""

    pass


class DependencyMissing(WPBackupError):
    """Raised when a required external tool is not installed."""

    def __init__(self, tools: list[str]):
        self.tools = list(tools)
        super().__init__(f"Missing required tools: {', '.join(self.tools)}")


class ConfigNotFound(WPBackupError):
    """Raised when the site has no wp-config.php."""

    pass


class ConfigIncomplete(WPBackupError):
    """Raised when wp-config.php lacks the database name, user, or host."""

    pass


class EnvironmentDetectionFailed(WPBackupError):
    """Raised when the database dialect cannot be determined."""

    pass


class ContainerResolutionError(WPBackupError):
    """Raised when the database container name cannot be resolved."""

    pass


class ContainerNotRunning(WPBackupError):
    """Raised when the resolved database container is not running."""

    pass


class DumpEmptyError(WPBackupError):
    """Raised when the database dump fails or produces an empty file."""

    pass


class RestoreExecError(WPBackupError):
    """Raised when loading the SQL dump into the database fails."""

    pass


class InvalidArchive(WPBackupError):
    """Raised when a backup archive is unreadable or structurally incomplete."""

    pass


class FileRestoreIOError(WPBackupError):
    """Raised when site files cannot be moved aside or copied into place."""

    pass


class PackagingError(WPBackupError):
    """Raised when the backup archive cannot be written."""

    pass
