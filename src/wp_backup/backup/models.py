"""Result and state models for backup/restore operations.

Archive layout (zip)::

    files/<site folder>/...   recursive copy of the WordPress root
    database.sql              plain-text SQL dump
    backup_info.txt           optional human-readable manifest

Usage:
    from wp_backup.backup.models import BackupResult, RestoreResult, RestoreState
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from wp_backup.environment.models import EnvironmentDescriptor

ARCHIVE_FILES_DIR = "files"
ARCHIVE_SQL_FILE = "database.sql"
ARCHIVE_MANIFEST_FILE = "backup_info.txt"


class RestoreState(str, Enum):
    """Restore progress.  ``DONE`` and ``FAILED`` are terminal."""

    VALIDATING = "validating"
    DETECTING_ENVIRONMENT = "detecting_environment"
    EXTRACTING_CONFIG = "extracting_config"
    RESTORING_DATABASE = "restoring_database"
    RESTORING_FILES = "restoring_files"
    DONE = "done"
    FAILED = "failed"


class ExtractedArchive(BaseModel):
    """A validated archive unpacked into a temporary directory."""

    root: Path                      # extraction directory
    sql_path: Path                  # <root>/database.sql
    files_dir: Path                 # <root>/files
    site_dir: Path                  # directory holding wp-config.php
    manifest_text: str | None = None


class BackupResult(BaseModel):
    """Outcome of ``backup_site``."""

    archive_path: Path
    environment: EnvironmentDescriptor
    archive_size: int
    verified: bool                  # False if the post-write CRC check failed


class RestoreResult(BaseModel):
    """Outcome of ``restore_site``."""

    site_dir: Path
    environment: EnvironmentDescriptor
    database_name: str
    previous_copy: Path | None = None   # where the pre-existing site was moved
    state: RestoreState = RestoreState.DONE
