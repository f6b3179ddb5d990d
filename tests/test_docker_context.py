"""
Tests for Docker context management.

Tests context loading, memoization, refresh notification, and CLI failures.
"""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from docker_dispatch.core.docker_context import DockerContextManager
from docker_dispatch.core.exceptions import (
    ContextParseError,
    DockerCommandError,
    DockerContextError,
    DockerTimeoutError,
)
from docker_dispatch.core.subprocess_manager import SubprocessManager, SubprocessResult


def _ls_line(name: str, endpoint: str, current: bool = False, **extra) -> str:
    return json.dumps(
        {"Name": name, "Description": "", "DockerEndpoint": endpoint, "Current": current, **extra}
    )


def _result(stdout: str) -> SubprocessResult:
    return SubprocessResult(returncode=0, stdout=stdout, stderr="", cmd=["docker"])


@pytest.fixture
def user_contexts(docker_config_dir: Path) -> Path:
    """Create a context store holding one user-created context."""
    meta = docker_config_dir / "contexts" / "meta" / "0123abcd"
    meta.mkdir(parents=True)
    (meta / "meta.json").write_text('{"Name": "remote"}')
    return meta


@pytest.fixture
def subprocess_manager():
    manager = MagicMock(spec=SubprocessManager)
    manager.run_command = AsyncMock()
    manager.cleanup_all = AsyncMock()
    return manager


@pytest.fixture
def manager(settings, subprocess_manager):
    with patch("docker_dispatch.core.docker_context.shutil.which", return_value="/usr/bin/docker"):
        return DockerContextManager(settings, subprocess_manager)


class TestDockerContextManagerInit:
    """Test DockerContextManager initialization and setup."""

    def test_creation(self, manager, settings):
        assert manager.settings is settings
        assert manager._contexts is None
        assert manager._docker_bin == "/usr/bin/docker"
        assert manager._watcher.config_path == settings.docker_config_file

    @patch("docker_dispatch.core.docker_context.shutil.which")
    def test_no_docker_bin(self, mock_which, settings):
        """Test DockerContextManager when docker binary not found."""
        mock_which.return_value = None

        manager = DockerContextManager(settings)

        assert manager._docker_bin == "docker"


class TestLoadContexts:
    """Test how the context list is produced."""

    @pytest.mark.asyncio
    async def test_default_context_without_user_contexts(self, manager, subprocess_manager):
        """Test that no CLI is spawned when only the default context exists."""
        contexts = await manager.get_contexts()

        assert len(contexts) == 1
        assert contexts[0].name == "default"
        assert contexts[0].current is True
        assert contexts[0].description == "Current DOCKER_HOST based configuration"
        assert contexts[0].docker_endpoint == manager.settings.default_docker_endpoint
        subprocess_manager.run_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_docker_host_overrides_contexts(self, settings, subprocess_manager, user_contexts):
        settings = settings.model_copy(update={"docker_host": "tcp://10.0.0.5:2376"})
        manager = DockerContextManager(settings, subprocess_manager)

        contexts = await manager.get_contexts()

        assert [(c.name, c.docker_endpoint, c.current) for c in contexts] == [
            ("default", "tcp://10.0.0.5:2376", True)
        ]
        subprocess_manager.run_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parses_cli_output(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(
            _ls_line("default", "unix:///var/run/docker.sock")
            + "\r\n\n"
            + _ls_line("remote", "ssh://me@host", current=True, Error=None)
            + "\n"
        )

        contexts = await manager.get_contexts()

        assert [c.name for c in contexts] == ["default", "remote"]
        assert (await manager.get_current_context()).docker_endpoint == "ssh://me@host"
        subprocess_manager.run_command.assert_awaited_once_with(
            ["/usr/bin/docker", "context", "ls", "--format", "{{json .}}"],
            timeout=manager.settings.context_command_timeout,
        )

    @pytest.mark.asyncio
    async def test_malformed_line(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(
            _ls_line("default", "unix:///var/run/docker.sock", current=True) + "\n{not json"
        )

        with pytest.raises(ContextParseError):
            await manager.get_contexts()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current_flags", [(False, False), (True, True)])
    async def test_requires_exactly_one_current(
        self, manager, subprocess_manager, user_contexts, current_flags
    ):
        subprocess_manager.run_command.return_value = _result(
            "\n".join(_ls_line(f"ctx{i}", "unix:///x", current=flag) for i, flag in enumerate(current_flags))
        )

        with pytest.raises(ContextParseError, match="exactly one current"):
            await manager.get_contexts()

    @pytest.mark.asyncio
    async def test_cli_timeout(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.side_effect = asyncio.TimeoutError("Command timed out")

        with pytest.raises(DockerTimeoutError) as exc_info:
            await manager.get_contexts()
        assert exc_info.value.reportable is False

    @pytest.mark.asyncio
    async def test_cli_failure(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.side_effect = DockerCommandError("Command failed with exit code 1: boom")

        with pytest.raises(DockerContextError, match="boom"):
            await manager.get_contexts()

    @pytest.mark.asyncio
    async def test_cli_missing(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.side_effect = FileNotFoundError("docker")

        with pytest.raises(DockerContextError, match="Failed to run docker CLI"):
            await manager.get_contexts()


class TestMemoizationAndRefresh:
    """Test the memoized list and refresh notifications."""

    @pytest.mark.asyncio
    async def test_get_contexts_is_idempotent(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(_ls_line("remote", "ssh://h", current=True))

        first = await manager.get_contexts()
        second = await manager.get_contexts()

        assert first is second
        subprocess_manager.run_command.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_first_callers_share_one_load(self, manager, subprocess_manager, user_contexts):
        async def slow_ls(*args, **kwargs):
            await asyncio.sleep(0.05)
            return _result(_ls_line("remote", "ssh://h", current=True))

        subprocess_manager.run_command.side_effect = slow_ls

        results = await asyncio.gather(*(manager.get_contexts() for _ in range(5)))

        assert all(result is results[0] for result in results)
        subprocess_manager.run_command.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_publishes_current_context(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(_ls_line("remote", "ssh://h", current=True))
        await manager.get_contexts()
        subprocess_manager.run_command.return_value = _result(
            _ls_line("remote", "ssh://h") + "\n" + _ls_line("aci1", "aci", current=True, ContextType="aci")
        )
        published = []
        manager.on_context_changed(published.append)

        await manager.refresh()

        assert [c.name for c in published] == ["aci1"]
        assert [c.name for c in await manager.get_contexts()] == ["remote", "aci1"]

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_list(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(_ls_line("remote", "ssh://h", current=True))
        before = await manager.get_contexts()
        subprocess_manager.run_command.return_value = _result("garbage")
        listener = MagicMock()
        manager.on_context_changed(listener)

        with pytest.raises(ContextParseError):
            await manager.refresh()

        assert await manager.get_contexts() is before
        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_readers_during_refresh_see_previous_list(self, manager, subprocess_manager, user_contexts):
        subprocess_manager.run_command.return_value = _result(_ls_line("remote", "ssh://h", current=True))
        before = await manager.get_contexts()
        release = asyncio.Event()

        async def slow_ls(*args, **kwargs):
            await release.wait()
            return _result(_ls_line("other", "ssh://o", current=True))

        subprocess_manager.run_command.side_effect = slow_ls
        refresh = asyncio.create_task(manager.refresh())
        await asyncio.sleep(0.01)

        assert await manager.get_contexts() is before

        release.set()
        await refresh
        assert (await manager.get_current_context()).name == "other"

    @pytest.mark.asyncio
    async def test_dispose_clears_listeners(self, manager, subprocess_manager):
        listener = MagicMock()
        manager.on_context_changed(listener)

        await manager.dispose()
        await manager.refresh()

        listener.assert_not_called()
        subprocess_manager.cleanup_all.assert_awaited()


class TestContextCommands:
    """Test inspect, use and remove."""

    @pytest.mark.asyncio
    async def test_inspect_returns_first_entry(self, manager, subprocess_manager):
        subprocess_manager.run_command.return_value = _result(
            json.dumps([{"Name": "remote", "Endpoints": {"docker": {"Host": "ssh://h"}}}])
        )

        inspection = await manager.inspect("remote")

        assert inspection["Endpoints"]["docker"]["Host"] == "ssh://h"
        subprocess_manager.run_command.assert_awaited_once_with(
            ["/usr/bin/docker", "context", "inspect", "remote"],
            timeout=manager.settings.context_command_timeout,
        )

    @pytest.mark.asyncio
    async def test_inspect_unexpected_output(self, manager, subprocess_manager):
        subprocess_manager.run_command.return_value = _result("[]")

        with pytest.raises(ContextParseError):
            await manager.inspect("remote")

    @pytest.mark.asyncio
    async def test_use(self, manager, subprocess_manager):
        subprocess_manager.run_command.return_value = _result("remote\n")

        await manager.use("remote")

        subprocess_manager.run_command.assert_awaited_once_with(
            ["/usr/bin/docker", "context", "use", "remote"],
            timeout=manager.settings.context_use_timeout,
        )

    @pytest.mark.asyncio
    async def test_use_failure(self, manager, subprocess_manager):
        subprocess_manager.run_command.side_effect = DockerCommandError("context \"nope\" does not exist")

        with pytest.raises(DockerContextError):
            await manager.use("nope")

    @pytest.mark.asyncio
    async def test_remove_is_fire_and_forget(self, manager, subprocess_manager):
        await manager.remove("remote")

        subprocess_manager.spawn.assert_called_once_with(
            ["/usr/bin/docker", "context", "rm", "remote"],
            timeout=manager.settings.context_use_timeout,
        )
        subprocess_manager.run_command.assert_not_awaited()
