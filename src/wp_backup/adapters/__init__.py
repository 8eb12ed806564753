"""Database client package.

Provides the ``DatabaseClient`` Protocol and the two concrete clients:
``NativeClient`` (tools run on the host) and ``ContainerClient`` (tools run
through ``docker exec``).

Usage:
    from wp_backup.adapters import DatabaseClient, NativeClient, ContainerClient
"""

from wp_backup.adapters.base import DatabaseClient
from wp_backup.adapters.container import ContainerClient
from wp_backup.adapters.native import NativeClient

__all__ = [
    "DatabaseClient",
    "NativeClient",
    "ContainerClient",
]
