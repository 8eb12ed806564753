"""Backup and restore of a WordPress site's files and database.

Usage:
    from wp_backup.backup import backup_site, restore_site, validate_archive
"""

from wp_backup.backup.archive import validate_archive
from wp_backup.backup.backup_restore import backup_site, restore_site
from wp_backup.backup.models import BackupResult, RestoreResult, RestoreState

__all__ = [
    "backup_site",
    "restore_site",
    "validate_archive",
    "BackupResult",
    "RestoreResult",
    "RestoreState",
]
