"""Shared implementation for clients that shell out to mysql-family tools.

``SQLCommandClient`` builds the argument vectors and interprets exit codes;
subclasses only decide how the tool is reached (directly on the host, or
through ``docker exec``) and whether a host flag is passed.

Both MariaDB and MySQL tools accept the same flag shape::

    <tool> [-h<host>] -u<user> [-p<password>] [dump options] <database>

The password flag is only appended when a password is set, so
unauthenticated and socket-auth setups never trigger a prompt.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from wp_backup.environment.models import Dialect
from wp_backup.errors import DumpEmptyError, RestoreExecError
from wp_backup.shell import CommandRunner, last_line, redact
from wp_backup.site_config import SiteConfiguration

logger = logging.getLogger(__name__)

# Consistent snapshot including stored routines and triggers
DUMP_OPTIONS = ["--single-transaction", "--routines", "--triggers"]


class SQLCommandClient(ABC):
    """Base class for command-line database clients.

    Args:
        site_config: Credentials from ``wp-config.php``.
        dialect: Engine whose binaries are used.
        runner: Command runner that executes the tools.
        timeout: Optional per-command timeout in seconds.
    """

    def __init__(
        self,
        site_config: SiteConfiguration,
        dialect: Dialect,
        runner: CommandRunner,
        timeout: float | None = None,
    ):
        self.site_config = site_config
        self.dialect = dialect
        self.runner = runner
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _prefix(self, interactive: bool) -> list[str]:
        """Arguments placed before the tool name."""
        return []

    def _host_args(self) -> list[str]:
        return []

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable target, used in log and error messages."""

    # ------------------------------------------------------------------
    # Command construction
    # ------------------------------------------------------------------

    def _auth_args(self) -> list[str]:
        args = [f"-u{self.site_config.db_user}"]
        if self.site_config.db_password:
            args.append(f"-p{self.site_config.db_password}")
        return args

    def dump_command(self) -> list[str]:
        """Full argument vector for the dump."""
        return [
            *self._prefix(interactive=False),
            self.dialect.dump_binary,
            *self._host_args(),
            *self._auth_args(),
            *DUMP_OPTIONS,
            self.site_config.db_name,
        ]

    def restore_command(self) -> list[str]:
        """Full argument vector for the restore (SQL read from stdin)."""
        return [
            *self._prefix(interactive=True),
            self.dialect.client_binary,
            *self._host_args(),
            *self._auth_args(),
            self.site_config.db_name,
        ]

    def _diagnostic(self, stderr: str) -> str:
        detail = last_line(redact(stderr, self.site_config.db_password))
        return f": {detail}" if detail else ""

    # ------------------------------------------------------------------
    # DatabaseClient
    # ------------------------------------------------------------------

    def dump(self, sql_path: Path) -> int:
        logger.info("Creating database backup using %s...", self.describe())
        with open(sql_path, "wb") as out:
            result = self.runner.run(self.dump_command(), stdout=out, timeout=self.timeout)

        if not result.ok:
            raise DumpEmptyError(
                f"Failed to create database backup using {self.describe()}"
                f"{self._diagnostic(result.stderr)}"
            )

        size = sql_path.stat().st_size if sql_path.exists() else 0
        if size == 0:
            raise DumpEmptyError("Database backup file is empty")

        logger.info("Database backup size: %d bytes", size)
        return size

    def restore(self, sql_path: Path) -> None:
        if not sql_path.is_file() or sql_path.stat().st_size == 0:
            raise RestoreExecError("Database backup file is empty or does not exist")

        logger.info("Restoring database using %s...", self.describe())
        with open(sql_path, "rb") as sql:
            result = self.runner.run(self.restore_command(), stdin=sql, timeout=self.timeout)

        if not result.ok:
            raise RestoreExecError(
                f"Failed to restore database using {self.describe()}"
                f"{self._diagnostic(result.stderr)}"
            )
        logger.info("Database '%s' restored successfully", self.site_config.db_name)
