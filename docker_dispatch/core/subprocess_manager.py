"""Runs docker CLI commands as asyncio subprocesses.

Every process started here is tracked until it exits, so shutdown can
terminate whatever is still running, fire-and-forget commands included.
"""

import asyncio
import os
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from .exceptions import DockerCommandError

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30.0
KILL_TIMEOUT = 5.0  # Grace period between SIGTERM and SIGKILL


@dataclass(frozen=True)
class SubprocessResult:
    """Exit status and decoded output of a finished command."""

    cmd: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def check_returncode(self) -> None:
        """Raise DockerCommandError for a non-zero exit status."""
        if self.success:
            return
        detail = self.stderr.strip() or self.stdout.strip() or "no output"
        raise DockerCommandError(f"Command failed with exit code {self.returncode}: {detail}")


class SubprocessManager:
    """Starts, bounds and reaps CLI subprocesses."""

    def __init__(self) -> None:
        self._processes: set[asyncio.subprocess.Process] = set()
        self._background: set[asyncio.Task] = set()

    @asynccontextmanager
    async def _process(
        self, cmd: list[str], env: dict[str, str] | None
    ) -> AsyncIterator[asyncio.subprocess.Process]:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, **env} if env else None,
        )
        self._processes.add(process)
        try:
            yield process
        finally:
            self._processes.discard(process)
            if process.returncode is None:
                await _terminate(process)

    async def run_command(
        self,
        cmd: Sequence[str],
        *,
        timeout: float | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> SubprocessResult:
        """Run ``cmd`` to completion and capture its output.

        Args:
            cmd: Executable and arguments
            timeout: Seconds before the process is terminated (default: DEFAULT_TIMEOUT)
            check: Raise for a non-zero exit status
            env: Variables layered over the current environment

        Raises:
            asyncio.TimeoutError: The timeout passed first
            DockerCommandError: ``check`` is set and the command failed
            OSError: The executable could not be started
        """
        cmd = list(cmd)
        timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        logger.debug("Running command", command=" ".join(cmd), timeout=timeout)

        async with self._process(cmd, env) as process:
            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
            except asyncio.TimeoutError:
                logger.warning("Command timed out", command=" ".join(cmd), timeout=timeout, pid=process.pid)
                raise asyncio.TimeoutError(
                    f"Command timed out after {timeout} seconds: {' '.join(cmd)}"
                ) from None

        result = SubprocessResult(
            cmd=cmd,
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        if check:
            result.check_returncode()
        return result

    def spawn(self, cmd: Sequence[str], *, timeout: float | None = None) -> asyncio.Task:
        """Start ``cmd`` without waiting for it.

        Failures are logged, never raised. The returned task can still be
        awaited by callers that want to know when the command finished.
        """
        task = asyncio.create_task(self._run_detached(list(cmd), timeout))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _run_detached(self, cmd: list[str], timeout: float | None) -> None:
        try:
            result = await self.run_command(cmd, timeout=timeout, check=False)
        except (asyncio.TimeoutError, OSError) as e:
            logger.warning("Background command did not complete", command=" ".join(cmd), error=str(e))
            return

        if not result.success:
            logger.warning(
                "Background command failed",
                command=" ".join(cmd),
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )

    async def cleanup_all(self) -> None:
        """Cancel background commands and terminate every tracked process."""
        background = list(self._background)
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)

        leftovers = [process for process in self._processes if process.returncode is None]
        self._processes.clear()
        if leftovers:
            logger.info("Terminating leftover processes", count=len(leftovers))
        await asyncio.gather(*(_terminate(process) for process in leftovers))


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """SIGTERM, then SIGKILL once KILL_TIMEOUT has passed."""
    try:
        process.terminate()
        await asyncio.wait_for(process.wait(), KILL_TIMEOUT)
    except ProcessLookupError:
        pass
    except asyncio.TimeoutError:
        logger.warning("Process ignored SIGTERM, killing it", pid=process.pid)
        process.kill()
        await process.wait()
