"""Read database credentials from a WordPress ``wp-config.php``.

The file is PHP, so it is not executed or fully parsed: each ``define()``
line for the four ``DB_*`` constants is pattern-matched and its literal
value extracted.  Both quote styles are accepted.

Usage:
    from wp_backup.site_config import extract_site_config

    config = extract_site_config("/var/www/html/wordpress")
    print(config.db_name, config.db_host)
"""

import logging
import re
from pathlib import Path

from pydantic import BaseModel, Field

from wp_backup.errors import ConfigIncomplete, ConfigNotFound

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "wp-config.php"

_QUOTED = re.compile(r"""(['"])(.*?)\1""")


class SiteConfiguration(BaseModel):
    """Database connection settings of one WordPress site."""

    db_name: str
    db_user: str
    db_password: str = Field(default="", repr=False)  # empty for socket/no-auth setups
    db_host: str


def _define_pattern(key: str) -> re.Pattern[str]:
    return re.compile(
        rf"""^\s*define\s*\(\s*(['"]){key}\1\s*,(?P<rest>.*)$""",
        re.MULTILINE,
    )


def _extract_value(content: str, key: str) -> str | None:
    """Return the literal assigned to ``key``, or ``None`` if not found.

    ``define('DB_NAME', 'wp')`` yields ``wp``.  When the value is a call such
    as ``getenv_docker('WORDPRESS_DB_NAME', 'wordpress')`` (official Docker
    image) the last literal on the line, the fallback default, is used.
    """
    match = _define_pattern(key).search(content)
    if not match:
        return None
    rest = match.group("rest").strip()
    literals = _QUOTED.findall(rest)
    if not literals:
        return None
    if rest[0] in "'\"":
        return literals[0][1]
    return literals[-1][1]


def find_config_file(site_dir: str | Path) -> Path:
    """Locate ``wp-config.php`` directly inside ``site_dir``.

    Raises:
        ConfigNotFound: If the file does not exist.
    """
    config_path = Path(site_dir) / CONFIG_FILENAME
    if not config_path.is_file():
        raise ConfigNotFound(f"{CONFIG_FILENAME} not found in {site_dir}")
    return config_path


def extract_site_config(site_dir: str | Path) -> SiteConfiguration:
    """Parse the database settings of the site rooted at ``site_dir``.

    Args:
        site_dir: WordPress root directory containing ``wp-config.php``.

    Returns:
        ``SiteConfiguration`` with name, user, host and (possibly empty)
        password.

    Raises:
        ConfigNotFound: If ``wp-config.php`` is absent.
        ConfigIncomplete: If ``DB_NAME``, ``DB_USER`` or ``DB_HOST`` cannot
            be extracted.
    """
    config_path = find_config_file(site_dir)
    content = config_path.read_text(encoding="utf-8", errors="replace")

    values = {
        key: _extract_value(content, key)
        for key in ("DB_NAME", "DB_USER", "DB_PASSWORD", "DB_HOST")
    }

    missing = [
        key for key in ("DB_NAME", "DB_USER", "DB_HOST") if not values[key]
    ]
    if missing:
        raise ConfigIncomplete(
            f"Could not extract {', '.join(missing)} from {config_path}"
        )

    config = SiteConfiguration(
        db_name=values["DB_NAME"],
        db_user=values["DB_USER"],
        db_password=values["DB_PASSWORD"] or "",
        db_host=values["DB_HOST"],
    )
    logger.info("Database: %s on %s", config.db_name, config.db_host)
    return config
