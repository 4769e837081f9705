"""Configuration settings for multiarch_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the MULTIARCH_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="MULTIARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Build tool
    docker_binary: str = Field(
        default="docker",
        description="Docker executable used for builds, pushes and manifests",
    )
    definition_prefix: str = Field(
        default="Dockerfile.",
        description="Prefix identifying per-architecture Dockerfiles",
    )
    default_tag: str = Field(
        default="latest",
        description="Tag used when --tag is not given",
    )

    # Operational modes
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    manifest_on_failure: bool = Field(
        default=False,
        description="Create the manifest even if some architecture builds failed",
    )

    # Concurrency
    max_workers: int | None = Field(
        default=None,
        ge=1,
        le=64,
        description="Maximum parallel builds (unset = one per architecture)",
    )

    # Timeouts (in seconds)
    command_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout for each docker command (unset = no timeout)",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
