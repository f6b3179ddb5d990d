"""Shared pytest fixtures for Docker dispatch tests."""

from pathlib import Path

import pytest

from docker_dispatch.core.settings import DockerDispatchSettings


@pytest.fixture
def docker_config_dir(tmp_path: Path) -> Path:
    """Empty Docker CLI configuration directory."""
    config_dir = tmp_path / ".docker"
    config_dir.mkdir()
    (config_dir / "config.json").write_text('{"currentContext": "default"}')
    return config_dir


@pytest.fixture
def settings(docker_config_dir: Path) -> DockerDispatchSettings:
    """Settings isolated from the host environment, with short timeouts."""
    return DockerDispatchSettings(
        docker_call_timeout=0.2,
        context_command_timeout=0.5,
        context_use_timeout=0.5,
        docker_host=None,
        docker_config_dir=docker_config_dir,
    )
