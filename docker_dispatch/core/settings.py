"""Settings for Docker API dispatch.

Provides centralized timeout and endpoint configuration using Pydantic
BaseSettings with environment variable support for operational tuning.
"""

import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_docker_config_dir() -> Path:
    return Path.home() / ".docker"


class DockerDispatchSettings(BaseSettings):
    """Docker dispatch configuration."""

    docker_call_timeout: float = Field(
        20.0, alias="DOCKER_CALL_TIMEOUT", description="Per-call engine timeout in seconds"
    )

    context_command_timeout: float = Field(
        10.0,
        alias="DOCKER_CONTEXT_COMMAND_TIMEOUT",
        description="Timeout for `docker context ls` and `docker context inspect` in seconds",
    )

    context_use_timeout: float = Field(
        5.0,
        alias="DOCKER_CONTEXT_USE_TIMEOUT",
        description="Timeout for `docker context use` and `docker context rm` in seconds",
    )

    docker_host: str | None = Field(
        None, alias="DOCKER_HOST", description="Explicit engine endpoint, bypasses contexts"
    )

    docker_config_dir: Path = Field(
        default_factory=_default_docker_config_dir,
        alias="DOCKER_CONFIG",
        description="Docker CLI configuration directory",
    )

    serve_address: str = Field(
        "unix:///tmp/docker-api.sock",
        alias="DOCKER_SERVE_ADDRESS",
        description="gRPC address of the serverless backend API",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL", description="Log level")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def docker_config_file(self) -> Path:
        """Global CLI config file; it names the currently selected context."""
        return self.docker_config_dir / "config.json"

    @property
    def contexts_meta_dir(self) -> Path:
        """Directory holding one metadata folder per user-created context."""
        return self.docker_config_dir / "contexts" / "meta"

    @property
    def default_docker_endpoint(self) -> str:
        if sys.platform == "win32":
            return "npipe:////./pipe/docker_engine"
        return "unix:///var/run/docker.sock"


def get_settings() -> DockerDispatchSettings:
    """Load settings from the environment."""
    return DockerDispatchSettings()
