"""Client for a database server running inside a Docker container.

Usage:
    from wp_backup.adapters.container import ContainerClient

    client = ContainerClient(site_config, Dialect.MYSQL, runner, container="wp-db")
    client.restore(Path("database.sql"))
"""

from wp_backup.adapters.command import SQLCommandClient
from wp_backup.environment.models import Dialect
from wp_backup.shell import CommandRunner
from wp_backup.site_config import SiteConfiguration


class ContainerClient(SQLCommandClient):
    """Runs the database tools inside the container via ``docker exec``.

    No host flag is passed: the tools connect over the container's own
    loopback/socket, whatever ``DB_HOST`` says from the WordPress side.
    """

    def __init__(
        self,
        site_config: SiteConfiguration,
        dialect: Dialect,
        runner: CommandRunner,
        container: str,
        timeout: float | None = None,
        docker_binary: str = "docker",
    ):
        super().__init__(site_config, dialect, runner, timeout)
        self.container = container
        self.docker_binary = docker_binary

    def _prefix(self, interactive: bool) -> list[str]:
        # -i keeps stdin open so the dump can be piped in
        if interactive:
            return [self.docker_binary, "exec", "-i", self.container]
        return [self.docker_binary, "exec", self.container]

    def describe(self) -> str:
        return f"{self.dialect.label} in Docker container '{self.container}'"
