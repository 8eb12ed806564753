"""Native dialect probes.

Each probe inspects the host one way and answers ``Dialect`` or ``None``
(inconclusive).  ``NATIVE_PROBES`` lists them in priority order; the
resolver stops at the first conclusive answer.  New engines or detection
methods plug in by adding a probe to the list.

Usage:
    from wp_backup.environment.probes import NATIVE_PROBES

    for probe in NATIVE_PROBES:
        dialect = probe.detect(runner)
        if dialect:
            break
"""

import re
from typing import Protocol

from wp_backup.environment.models import Dialect
from wp_backup.shell import CommandRunner


class DialectProbe(Protocol):
    """One host inspection strategy."""

    source: str  # human-readable origin, used in log lines

    def detect(self, runner: CommandRunner) -> Dialect | None:
        """Return the detected dialect, or ``None`` if inconclusive."""
        ...


class ProcessTableProbe:
    """Look for a running database daemon with ``pgrep -f``."""

    source = "running processes"

    # MariaDB first: its daemon may also be called mysqld
    patterns: tuple[tuple[str, Dialect], ...] = (
        (r"mariadb|mysqld.*mariadb", Dialect.MARIADB),
        (r"mysqld", Dialect.MYSQL),
    )

    def detect(self, runner: CommandRunner) -> Dialect | None:
        if not runner.which("pgrep"):
            return None
        for pattern, dialect in self.patterns:
            if runner.run(["pgrep", "-f", pattern]).ok:
                return dialect
        return None


class PackageManifestProbe:
    """Scan the Debian package list for server or client packages."""

    source = "installed packages"

    patterns: tuple[tuple[re.Pattern[str], Dialect], ...] = (
        (re.compile(r"mariadb-(server|client)"), Dialect.MARIADB),
        (re.compile(r"mysql-(server|client)"), Dialect.MYSQL),
    )

    def detect(self, runner: CommandRunner) -> Dialect | None:
        if not runner.which("dpkg"):
            return None
        result = runner.run(["dpkg", "-l"])
        if not result.ok:
            return None
        for pattern, dialect in self.patterns:
            if pattern.search(result.stdout):
                return dialect
        return None


class ClientBinaryProbe:
    """MariaDB ships its own client binaries; their presence is decisive."""

    source = "available commands"

    def detect(self, runner: CommandRunner) -> Dialect | None:
        if runner.which(Dialect.MARIADB.client_binary) or runner.which(
            Dialect.MARIADB.dump_binary
        ):
            return Dialect.MARIADB
        return None


class VersionReportProbe:
    """Ask the generic ``mysql`` client which server family it belongs to."""

    source = "version output"

    def detect(self, runner: CommandRunner) -> Dialect | None:
        if not runner.which(Dialect.MYSQL.client_binary):
            return None
        result = runner.run([Dialect.MYSQL.client_binary, "--version"])
        if not result.ok:
            return None
        output = result.stdout.lower()
        if Dialect.MARIADB.value in output:
            return Dialect.MARIADB
        return Dialect.MYSQL


NATIVE_PROBES: tuple[DialectProbe, ...] = (
    ProcessTableProbe(),
    PackageManifestProbe(),
    ClientBinaryProbe(),
    VersionReportProbe(),
)

# Used when every probe is inconclusive
FALLBACK_DIALECT = Dialect.MYSQL
