"""Client for a database server reached directly from the host.

Usage:
    from wp_backup.adapters.native import NativeClient

    client = NativeClient(site_config, Dialect.MARIADB, runner)
    client.dump(Path("database.sql"))
"""

import re

from wp_backup.adapters.command import SQLCommandClient

# "host:3307" or "host:/run/mysqld/mysqld.sock", as WordPress accepts in DB_HOST
_PORT_SUFFIX = re.compile(r"^(?P<host>.*):(?P<port>\d+)$")
_SOCKET_SUFFIX = re.compile(r"^(?P<host>[^/]*):(?P<socket>/.*)$")


def split_db_host(db_host: str) -> tuple[str, str | None, str | None]:
    """Split ``DB_HOST`` into ``(host, port, socket)``.

    A bare host, or a bracketed IPv6 address without a port, comes back
    unchanged with ``None`` for the other two.  An empty host part means
    ``localhost``.
    """
    match = _SOCKET_SUFFIX.match(db_host)
    if match:
        return match.group("host") or "localhost", None, match.group("socket")

    match = _PORT_SUFFIX.match(db_host)
    if match and (match.group("host").count(":") == 0 or match.group("host").endswith("]")):
        host = match.group("host").strip("[]") or "localhost"
        return host, match.group("port"), None

    return db_host, None, None


class NativeClient(SQLCommandClient):
    """Runs ``mariadb-dump``/``mysqldump`` and ``mariadb``/``mysql`` locally.

    Connects to ``DB_HOST`` from ``wp-config.php``, with a ``:port`` or
    ``:/path/to.sock`` suffix passed as ``-P`` or ``--socket``.  There is no
    separate liveness check: an unreachable server fails the dump or
    restore itself.
    """

    def _host_args(self) -> list[str]:
        host, port, socket = split_db_host(self.site_config.db_host)
        args = [f"-h{host}"]
        if port:
            args.append(f"-P{port}")
        if socket:
            args.append(f"--socket={socket}")
        return args

    def describe(self) -> str:
        return f"native {self.dialect.label} at {self.site_config.db_host}"
