"""Load tool settings from a TOML file.

Usage:
    from wp_backup.config.loader import load_settings

    settings = load_settings()                      # defaults or ./wp-backup.toml
    settings = load_settings(Path("ops/wp-backup.toml"))
"""

import os
import tomllib
from pathlib import Path

from wp_backup.config.models import ToolSettings

CONFIG_ENV_VAR = "WP_BACKUP_CONFIG"
DEFAULT_CONFIG_NAME = "wp-backup.toml"


def load_settings(config_path: Path | str | None = None) -> ToolSettings:
    """Load tool settings from a TOML file.

    Lookup order:
    1. ``config_path`` argument (must exist)
    2. ``WP_BACKUP_CONFIG`` env var (must exist)
    3. ``./wp-backup.toml`` if present
    4. Built-in defaults

    Only the ``[wp_backup]`` table is read; other tables are ignored so the
    file can be shared with other tools.

    Args:
        config_path: Explicit path to a TOML settings file.

    Returns:
        Validated ``ToolSettings``.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
        ValueError: If the file is not valid TOML or has invalid values.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = env_path
        else:
            default_path = Path.cwd() / DEFAULT_CONFIG_NAME
            if not default_path.exists():
                return ToolSettings()
            config_path = default_path

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Settings file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    # pydantic.ValidationError is a ValueError subclass
    return ToolSettings(**data.get("wp_backup", {}))
