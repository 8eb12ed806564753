"""Pydantic models for tool configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ToolSettings(BaseModel):
    """Tunables for environment detection and command execution.

    Every field has a default, so an empty (or absent) ``wp-backup.toml``
    is a valid configuration.
    """

    # Compose files searched for, in priority order
    compose_filenames: list[str] = Field(
        default_factory=lambda: [
            "docker-compose.yml",
            "docker-compose.yaml",
            "compose.yml",
            "compose.yaml",
        ]
    )
    compose_search_levels: int = Field(default=3, ge=0)  # parents above the site root
    container_keywords: list[str] = Field(
        default_factory=lambda: ["wordpress", "wp", "mysql", "mariadb"]
    )
    container_window_before: int = Field(default=5, ge=0)
    container_window_after: int = Field(default=10, ge=0)
    command_timeout: float | None = None  # seconds; None waits forever
    docker_binary: str = "docker"
