"""Database client factory.

Turns a resolved ``EnvironmentDescriptor`` plus the site's credentials into
the matching ``DatabaseClient``:

1. Containerized: ``ContainerClient`` running the tools via ``docker exec``
2. Native: ``NativeClient`` running the tools on the host against ``DB_HOST``
"""

from wp_backup.adapters.base import DatabaseClient
from wp_backup.adapters.container import ContainerClient
from wp_backup.adapters.native import NativeClient
from wp_backup.config.models import ToolSettings
from wp_backup.environment.models import EnvironmentDescriptor
from wp_backup.errors import ContainerResolutionError, EnvironmentDetectionFailed
from wp_backup.shell import CommandRunner
from wp_backup.site_config import SiteConfiguration


def get_client(
    site_config: SiteConfiguration,
    environment: EnvironmentDescriptor,
    runner: CommandRunner,
    settings: ToolSettings,
) -> DatabaseClient:
    """Create the database client for a resolved environment.

    Args:
        site_config: Credentials from ``wp-config.php``.
        environment: Output of ``resolve_environment``.
        runner: Command runner the client executes through.
        settings: Supplies the command timeout and docker binary.

    Returns:
        ``ContainerClient`` or ``NativeClient``.

    Raises:
        EnvironmentDetectionFailed: If the dialect was never resolved.
        ContainerResolutionError: If containerized without a container name.

    Example:
        >>> client = get_client(config, env, CommandRunner(), ToolSettings())
        >>> client.describe()
        'native MySQL at localhost'
    """
    if environment.dialect is None:
        raise EnvironmentDetectionFailed("Database type has not been resolved")

    if environment.is_containerized:
        if not environment.container_name:
            raise ContainerResolutionError("Database container name has not been resolved")
        return ContainerClient(
            site_config,
            environment.dialect,
            runner,
            container=environment.container_name,
            timeout=settings.command_timeout,
            docker_binary=settings.docker_binary,
        )

    return NativeClient(
        site_config,
        environment.dialect,
        runner,
        timeout=settings.command_timeout,
    )
