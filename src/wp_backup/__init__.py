"""wp-backup: WordPress backup and restore for native and Docker databases.

Detects whether the site's MariaDB/MySQL database runs in a compose-managed
container or on the host, drives the matching dump/restore tools, and packs
files plus dump into a self-describing zip archive.

Usage:
    from wp_backup import backup_site, restore_site, validate_archive
    from wp_backup import extract_site_config, detect_environment
    from wp_backup import Dialect, EnvironmentDescriptor, WPBackupError
"""

__version__ = "0.1.0"

# Orchestration
from wp_backup.backup import (
    BackupResult,
    RestoreResult,
    RestoreState,
    backup_site,
    restore_site,
    validate_archive,
)

# Config
from wp_backup.config import ToolSettings, load_settings

# Environment
from wp_backup.environment import (
    Dialect,
    EnvironmentDescriptor,
    detect_environment,
    resolve_environment,
)

# Errors
from wp_backup.errors import WPBackupError

# Site configuration
from wp_backup.site_config import SiteConfiguration, extract_site_config

__all__ = [
    # Orchestration
    "backup_site",
    "restore_site",
    "validate_archive",
    "BackupResult",
    "RestoreResult",
    "RestoreState",
    # Config
    "load_settings",
    "ToolSettings",
    # Environment
    "detect_environment",
    "resolve_environment",
    "Dialect",
    "EnvironmentDescriptor",
    # Errors
    "WPBackupError",
    # Site configuration
    "extract_site_config",
    "SiteConfiguration",
]
