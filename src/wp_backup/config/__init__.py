"""Tool configuration: TOML loading and settings model.

Usage:
    >>> from wp_backup.config import load_settings, ToolSettings
"""

from wp_backup.config.loader import load_settings
from wp_backup.config.models import ToolSettings

__all__ = ["load_settings", "ToolSettings"]
