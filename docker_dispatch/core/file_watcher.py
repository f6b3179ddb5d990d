"""Watches the Docker CLI configuration for context switches.

``docker context use`` rewrites ``config.json`` through a temporary file and
a rename, which a watch on the file itself would lose after the first
switch. The parent directory is watched instead and events are filtered
down to the config file.
"""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog
from watchfiles import Change, awatch

logger = structlog.get_logger()

RESTART_DELAY = 5  # Seconds before watching again after a watcher failure
DEBOUNCE_MS = 100  # Writes closer together than this are reported as one batch


class ConfigFileWatcher:
    """Calls ``on_change`` after each batch of writes to one config file."""

    def __init__(self, config_path: str | Path, on_change: Callable[[], Awaitable[None]]):
        self.config_path = Path(config_path)
        self.on_change = on_change
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()

    @property
    def is_watching(self) -> bool:
        return self._task is not None and not self._task.done()

    def _is_config_file(self, change: Change, path: str) -> bool:
        return Path(path).name == self.config_path.name

    async def start_watching(self) -> None:
        if self.is_watching:
            logger.debug("Docker config watcher already running", path=str(self.config_path))
            return

        if not self.config_path.parent.is_dir():
            logger.warning("Docker config directory missing, not watching", path=str(self.config_path.parent))
            return

        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Watching Docker config", path=str(self.config_path))

    async def stop_watching(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return

        self._stop.set()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Stopped watching Docker config", path=str(self.config_path))

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                async for changes in awatch(
                    self.config_path.parent,
                    watch_filter=self._is_config_file,
                    debounce=DEBOUNCE_MS,
                    stop_event=self._stop,
                    recursive=False,
                ):
                    logger.debug("Docker config changed", changes=len(changes))
                    await self._notify()
            except Exception as e:
                logger.error("Docker config watcher failed", error=str(e), retry_in=RESTART_DELAY)
                await asyncio.sleep(RESTART_DELAY)
            else:
                # awatch only returns once the stop event is set
                return

    async def _notify(self) -> None:
        try:
            await self.on_change()
        except Exception as e:
            # Keep watching; the next write gets another chance
            logger.error("Docker config change handler failed", error=str(e), path=str(self.config_path))
