"""Test doubles shared across Docker dispatch tests."""

import asyncio
from typing import Any

from docker_dispatch.clients.base import DockerApiClient
from docker_dispatch.core.cancellation import CancellationToken, race
from docker_dispatch.core.events import EventChannel
from docker_dispatch.core.settings import DockerDispatchSettings
from docker_dispatch.models import BackendFamily, DockerContainer, DockerContext


def make_context(name: str, endpoint: str, current: bool = False, context_type: str | None = None) -> DockerContext:
    return DockerContext(
        name=name,
        description=f"{name} context",
        docker_endpoint=endpoint,
        current=current,
        context_type=context_type,
    )


def make_container(container_id: str = "abc123", state: str = "running") -> DockerContainer:
    return DockerContainer(
        id=container_id,
        name="web_1",
        created_time=1700000000000,
        tree_id=f"{container_id}{state}",
        state=state,
        compose_project_name="Other Containers",
    )


class StubContextManager:
    """Context manager double whose current context is switched by the test."""

    def __init__(self, settings: DockerDispatchSettings, current: DockerContext):
        self.settings = settings
        self.contexts = [current]
        self._channel: EventChannel[DockerContext] = EventChannel("context-changed")

    async def get_contexts(self) -> list[DockerContext]:
        return self.contexts

    async def get_current_context(self) -> DockerContext:
        return next(context for context in self.contexts if context.current)

    def on_context_changed(self, listener):
        return self._channel.subscribe(listener)

    async def switch(self, context: DockerContext) -> None:
        self.contexts = [context]
        await self._channel.fire(context)


class FakeBackend(DockerApiClient):
    """Backend double recording calls; ``get_containers`` blocks until released."""

    family = BackendFamily.LOCAL

    def __init__(self, label: str):
        self.label = label
        self.calls: list[str] = []
        self.release = asyncio.Event()
        self.dispose_gate: asyncio.Event | None = None
        self.disposed = False
        self._changing = CancellationToken()

    def notify_context_changing(self) -> None:
        self._changing.cancel("Docker context changed")

    async def dispose(self) -> None:
        if self.dispose_gate is not None:
            await self.dispose_gate.wait()
        self.disposed = True

    async def get_containers(self, token: CancellationToken | None = None) -> list[DockerContainer]:
        self.calls.append("get_containers")

        async def wait_for_release() -> list[DockerContainer]:
            await self.release.wait()
            return [make_container()]

        return await race(wait_for_release, timeout=5, signals=(self._changing, token))

    async def stop_container(self, ref: str, token: CancellationToken | None = None) -> None:
        self.calls.append("stop_container")


class FakeServerlessBackend(FakeBackend):
    family = BackendFamily.SERVERLESS


async def wait_until(predicate: Any, attempts: int = 100, interval: float = 0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(interval)
    raise AssertionError("condition not reached")
