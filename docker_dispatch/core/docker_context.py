"""Docker context management.

This module tracks the Docker CLI contexts configured on this machine, works
out which one is current, and publishes a notification every time the set of
contexts is refreshed. Contexts are read through the Docker CLI; the on-disk
context store is only inspected to skip spawning the CLI when no user
contexts exist.
"""

import asyncio
import json
import shutil
from collections.abc import Awaitable, Callable

import structlog

from ..constants import DEFAULT_CONTEXT_DESCRIPTION, DEFAULT_CONTEXT_NAME
from ..models.context import DockerContext, DockerContextInspection
from ..utils import split_lines
from .events import EventChannel, Subscription
from .exceptions import ContextParseError, DockerCommandError, DockerContextError, DockerTimeoutError
from .file_watcher import ConfigFileWatcher
from .settings import DockerDispatchSettings, get_settings
from .subprocess_manager import SubprocessManager

logger = structlog.get_logger()


class DockerContextManager:
    """Tracks Docker contexts and the currently selected one."""

    def __init__(
        self,
        settings: DockerDispatchSettings | None = None,
        subprocess_manager: SubprocessManager | None = None,
    ):
        self.settings = settings or get_settings()
        self._subprocess = subprocess_manager or SubprocessManager()
        self._docker_bin = shutil.which("docker") or "docker"
        self._contexts: list[DockerContext] | None = None
        self._load_task: asyncio.Task | None = None
        self._refresh_lock = asyncio.Lock()
        self._context_changed: EventChannel[DockerContext] = EventChannel("context-changed")
        self._watcher = ConfigFileWatcher(self.settings.docker_config_file, self.refresh)

    def on_context_changed(
        self, listener: Callable[[DockerContext], Awaitable[None] | None]
    ) -> Subscription:
        """Subscribe to the current context published after every refresh."""
        return self._context_changed.subscribe(listener)

    async def start_watching(self) -> None:
        """Refresh whenever the Docker CLI config file changes."""
        await self._watcher.start_watching()

    async def dispose(self) -> None:
        await self._watcher.stop_watching()
        self._context_changed.clear()
        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
        await self._subprocess.cleanup_all()

    async def get_contexts(self) -> list[DockerContext]:
        """Return the memoized contexts, loading them on first use.

        Concurrent first callers share a single load.
        """
        if self._contexts is not None:
            return self._contexts

        if self._load_task is None or self._load_task.done():
            self._load_task = asyncio.create_task(self._load_contexts())

        task = self._load_task
        try:
            contexts = await asyncio.shield(task)
        finally:
            if task.done() and self._load_task is task:
                self._load_task = None

        if self._contexts is None:
            self._contexts = contexts
        return self._contexts

    async def get_current_context(self) -> DockerContext:
        contexts = await self.get_contexts()
        return _find_current(contexts)

    async def refresh(self) -> None:
        """Reload the contexts and publish the current one.

        The memoized list is replaced only once the new list has loaded
        successfully; readers never observe a partial list, and a failed
        refresh leaves the previous list in place.
        """
        async with self._refresh_lock:
            contexts = await self._load_contexts()
            self._contexts = contexts
            current = _find_current(contexts)

            logger.info(
                "Docker contexts refreshed",
                count=len(contexts),
                current=current.name,
                endpoint=current.docker_endpoint,
            )
            await self._context_changed.fire(current)

    async def inspect(self, context_name: str) -> DockerContextInspection:
        """Return `docker context inspect` output for one context."""
        result = await self._run_docker_command(
            ["context", "inspect", context_name],
            timeout=self.settings.context_command_timeout,
        )

        try:
            # The result is an array with one entry
            return json.loads(result)[0]
        except (json.JSONDecodeError, IndexError, KeyError) as e:
            raise ContextParseError(f"Unexpected context inspect output: {e}") from e

    async def use(self, context_name: str) -> None:
        """Make ``context_name`` the current context.

        The config file watcher observes the change and refreshes.
        """
        await self._run_docker_command(
            ["context", "use", context_name],
            timeout=self.settings.context_use_timeout,
        )
        logger.info("Docker context selected", context_name=context_name)

    async def remove(self, context_name: str) -> None:
        """Remove a context without waiting for the CLI to finish."""
        self._subprocess.spawn(
            [self._docker_bin, "context", "rm", context_name],
            timeout=self.settings.context_use_timeout,
        )
        logger.info("Docker context removal started", context_name=context_name)

    async def _load_contexts(self) -> list[DockerContext]:
        docker_host = self.settings.docker_host
        if docker_host:
            logger.debug("Using DOCKER_HOST endpoint", endpoint=docker_host)
            return [self._default_context(docker_host)]

        if not self._has_user_contexts():
            # Only the built-in default context exists; no need to ask the CLI
            return [self._default_context(self.settings.default_docker_endpoint)]

        output = await self._run_docker_command(
            ["context", "ls", "--format", "{{json .}}"],
            timeout=self.settings.context_command_timeout,
        )

        contexts = []
        for line in split_lines(output):
            try:
                contexts.append(DockerContext.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValueError) as e:
                logger.error("Failed to parse context JSON", line=line, error=str(e))
                raise ContextParseError(f"Failed to parse Docker context: {line}") from e

        _find_current(contexts)
        return contexts

    def _has_user_contexts(self) -> bool:
        meta_dir = self.settings.contexts_meta_dir
        try:
            return meta_dir.is_dir() and any(meta_dir.iterdir())
        except OSError:
            return False

    def _default_context(self, endpoint: str) -> DockerContext:
        return DockerContext(
            name=DEFAULT_CONTEXT_NAME,
            description=DEFAULT_CONTEXT_DESCRIPTION,
            docker_endpoint=endpoint,
            current=True,
        )

    async def _run_docker_command(self, args: list[str], timeout: float) -> str:
        """Run a docker CLI command and return its stdout."""
        cmd = [self._docker_bin] + args

        try:
            result = await self._subprocess.run_command(cmd, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DockerTimeoutError(f"Docker context command timed out: {' '.join(args)}") from e
        except DockerCommandError as e:
            raise DockerContextError(f"Docker context command failed: {e}") from e
        except OSError as e:
            raise DockerContextError(f"Failed to run docker CLI: {e}") from e

        return result.stdout


def _find_current(contexts: list[DockerContext]) -> DockerContext:
    """Return the single current context, or fail if there is not exactly one."""
    current = [context for context in contexts if context.current]
    if len(current) != 1:
        raise ContextParseError(
            f"Expected exactly one current Docker context, found {len(current)}"
        )
    return current[0]
