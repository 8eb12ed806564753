"""Models describing where and how the site's database runs."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class Dialect(str, Enum):
    """Supported SQL engines, in detection priority order."""

    MARIADB = "mariadb"
    MYSQL = "mysql"

    @property
    def dump_binary(self) -> str:
        return "mariadb-dump" if self is Dialect.MARIADB else "mysqldump"

    @property
    def client_binary(self) -> str:
        return "mariadb" if self is Dialect.MARIADB else "mysql"

    @property
    def label(self) -> str:
        return "MariaDB" if self is Dialect.MARIADB else "MySQL"


class EnvironmentDescriptor(BaseModel):
    """Detected database topology, threaded through one operation.

    Produced by the detector with ``dialect``/``container_name`` still
    unset, then completed by the resolver.  Frozen: every stage returns an
    updated copy via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    is_containerized: bool
    dialect: Dialect | None = None
    container_name: str | None = None
    compose_directory: Path | None = None
    dialect_confident: bool = True  # False when the native probes fell back

    def describe(self) -> str:
        """One-line summary for logs and the manifest."""
        dialect = self.dialect.label if self.dialect else "unknown"
        if self.is_containerized:
            return f"Docker ({self.container_name or 'unresolved'} container, {dialect})"
        return f"Native ({dialect} service)"
