"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that native and containerized
clients implement.  Clients drive the engine's own command-line tools; they
never speak the wire protocol themselves.

Usage:
    from wp_backup.adapters.base import DatabaseClient

    def do_work(client: DatabaseClient, sql_path: Path) -> None:
        size = client.dump(sql_path)
        client.restore(sql_path)
"""

from pathlib import Path
from typing import Protocol


class DatabaseClient(Protocol):
    """Dump/restore interface shared by all clients.

    All methods block until the underlying process exits.
    """

    def dump(self, sql_path: Path) -> int:
        """Write a plain-text SQL dump of the site database.

        Args:
            sql_path: Destination file (created or truncated).

        Returns:
            Size of the dump in bytes (always > 0).

        Raises:
            DumpEmptyError: If the dump process fails or writes nothing.

        Example:
            size = client.dump(Path("/tmp/stage/database.sql"))
        """
        ...

    def restore(self, sql_path: Path) -> None:
        """Load a SQL dump into the site database.

        Args:
            sql_path: Non-empty SQL file produced by ``dump``.

        Raises:
            RestoreExecError: If the file is missing/empty or the client
                exits non-zero.

        Example:
            client.restore(Path("/tmp/extract/database.sql"))
        """
        ...

    def describe(self) -> str:
        """Short human-readable target description (no credentials)."""
        ...
