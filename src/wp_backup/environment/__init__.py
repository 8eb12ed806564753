"""Environment detection and resolution.

Usage:
    from wp_backup.environment import detect_environment, resolve_environment
    from wp_backup.environment import Dialect, EnvironmentDescriptor
"""

from wp_backup.environment.detector import detect_environment
from wp_backup.environment.models import Dialect, EnvironmentDescriptor
from wp_backup.environment.resolver import (
    check_dependencies,
    ensure_container_running,
    resolve_environment,
)

__all__ = [
    "Dialect",
    "EnvironmentDescriptor",
    "detect_environment",
    "resolve_environment",
    "ensure_container_running",
    "check_dependencies",
]
