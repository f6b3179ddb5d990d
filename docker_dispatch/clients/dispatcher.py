"""Dispatcher: the DockerApiClient facade the rest of an application holds.

Owns exactly one installed backend at a time, tagged with its family, and
swaps it when the current Docker context moves to a different family.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from ..constants import SERVERLESS_CONTEXT_TYPES
from ..core.cancellation import CancellationToken
from ..core.docker_context import DockerContextManager
from ..core.events import Subscription
from ..core.exceptions import DockerDispatchError
from ..core.settings import DockerDispatchSettings
from ..models import (
    BackendFamily,
    DockerContainer,
    DockerContainerInspection,
    DockerContext,
    DockerImage,
    DockerImageInspection,
    DockerInfo,
    DockerNetwork,
    DockerNetworkInspection,
    DockerVolume,
    DockerVolumeInspection,
    DriverType,
    PruneResult,
)
from .base import DockerApiClient
from .engine import EngineClient
from .serverless import ServerlessClient

logger = structlog.get_logger()

BackendFactory = Callable[[DockerContext], DockerApiClient]


def family_for_context(context: DockerContext) -> BackendFamily:
    """Backend family able to serve ``context``."""
    endpoint = context.docker_endpoint.lower()
    context_type = (context.context_type or "").lower()
    if endpoint in SERVERLESS_CONTEXT_TYPES or context_type in SERVERLESS_CONTEXT_TYPES:
        return BackendFamily.SERVERLESS
    return BackendFamily.LOCAL


@dataclass(frozen=True)
class InstalledBackend:
    """A backend instance together with its explicit family tag."""

    family: BackendFamily
    client: DockerApiClient
    endpoint: str


class DockerClientDispatcher:
    """Routes every Docker call to the backend serving the current context.

    Lifecycle: ``initialize()`` on start-up, automatic swaps on context
    change, ``dispose()`` on shutdown. Also usable as an async context
    manager.
    """

    def __init__(
        self,
        context_manager: DockerContextManager,
        settings: DockerDispatchSettings | None = None,
        local_factory: BackendFactory | None = None,
        serverless_factory: BackendFactory | None = None,
    ):
        self.context_manager = context_manager
        self.settings = settings or context_manager.settings
        self._factories: dict[BackendFamily, BackendFactory] = {
            BackendFamily.LOCAL: local_factory or self._create_engine_client,
            BackendFamily.SERVERLESS: serverless_factory or self._create_serverless_client,
        }
        self._installed: InstalledBackend | None = None
        self._changing: asyncio.Future | None = None
        self._subscription: Subscription | None = None

    def _create_engine_client(self, context: DockerContext) -> DockerApiClient:
        return EngineClient(
            endpoint=context.docker_endpoint or None,
            settings=self.settings,
            context_manager=self.context_manager,
        )

    def _create_serverless_client(self, context: DockerContext) -> DockerApiClient:
        return ServerlessClient(settings=self.settings)

    @property
    def family(self) -> BackendFamily | None:
        return self._installed.family if self._installed else None

    @property
    def is_changing(self) -> bool:
        return self._changing is not None

    async def initialize(self) -> None:
        """Install the backend for the current context and follow context changes."""
        if self._installed is not None:
            return

        context = await self.context_manager.get_current_context()
        family = family_for_context(context)
        self._installed = InstalledBackend(family, self._factories[family](context), context.docker_endpoint)
        self._subscription = self.context_manager.on_context_changed(self._on_context_changed)
        logger.info("Docker backend installed", family=family.value, context=context.name)

    async def dispose(self) -> None:
        """Stop following context changes and release the installed backend."""
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

        installed, self._installed = self._installed, None
        if installed is not None:
            await installed.client.dispose()
            logger.info("Docker backend disposed", family=installed.family.value)

    async def __aenter__(self) -> "DockerClientDispatcher":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    async def _on_context_changed(self, context: DockerContext) -> None:
        family = family_for_context(context)
        installed = self._installed
        if installed is None:
            return

        if installed.family == family:
            if installed.endpoint != context.docker_endpoint and isinstance(installed.client, EngineClient):
                await installed.client.retarget(context.docker_endpoint or None)
                self._installed = InstalledBackend(family, installed.client, context.docker_endpoint)
            else:
                logger.debug("Docker backend family unchanged", family=family.value)
            return

        await self._swap(context, family)

    async def _swap(self, context: DockerContext, family: BackendFamily) -> None:
        """Replace the installed backend; calls issued meanwhile wait for the new one.

        The new backend is built before the old one is touched, so a failing
        factory leaves the old backend installed and usable.
        """
        try:
            client = self._factories[family](context)
        except Exception as e:
            logger.error(
                "Failed to create Docker backend, keeping the current one",
                family=family.value,
                context=context.name,
                error=str(e),
            )
            raise

        changing = asyncio.get_running_loop().create_future()
        self._changing = changing
        old = self._installed

        try:
            if old is not None:
                old.client.notify_context_changing()
            self._installed = InstalledBackend(family, client, context.docker_endpoint)
            if old is not None:
                await old.client.dispose()
        finally:
            self._changing = None
            changing.set_result(None)

        logger.info(
            "Docker backend switched",
            old_family=old.family.value if old else None,
            new_family=family.value,
            context=context.name,
        )

    async def _backend(self) -> DockerApiClient:
        while self._changing is not None:
            await asyncio.shield(self._changing)

        if self._installed is None:
            raise DockerDispatchError("Docker client dispatcher is not initialized")
        return self._installed.client

    async def info(self, token: CancellationToken | None = None) -> DockerInfo:
        return await (await self._backend()).info(token=token)

    # Containers

    async def get_containers(self, token: CancellationToken | None = None) -> list[DockerContainer]:
        return await (await self._backend()).get_containers(token=token)

    async def inspect_container(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerContainerInspection:
        return await (await self._backend()).inspect_container(ref, token=token)

    async def get_container_logs(
        self, ref: str, tail: int | None = None, token: CancellationToken | None = None
    ) -> str:
        return await (await self._backend()).get_container_logs(ref, tail=tail, token=token)

    async def prune_containers(self, token: CancellationToken | None = None) -> PruneResult:
        return await (await self._backend()).prune_containers(token=token)

    async def start_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).start_container(ref, token=token)

    async def restart_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).restart_container(ref, token=token)

    async def stop_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).stop_container(ref, token=token)

    async def remove_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).remove_container(ref, token=token)

    # Images

    async def get_images(self, token: CancellationToken | None = None) -> list[DockerImage]:
        return await (await self._backend()).get_images(token=token)

    async def inspect_image(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerImageInspection:
        return await (await self._backend()).inspect_image(ref, token=token)

    async def prune_images(self, token: CancellationToken | None = None) -> PruneResult:
        return await (await self._backend()).prune_images(token=token)

    async def tag_image(self, ref: str, full_tag: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).tag_image(ref, full_tag, token=token)

    async def remove_image(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).remove_image(ref, token=token)

    # Networks

    async def get_networks(self, token: CancellationToken | None = None) -> list[DockerNetwork]:
        return await (await self._backend()).get_networks(token=token)

    async def inspect_network(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerNetworkInspection:
        return await (await self._backend()).inspect_network(ref, token=token)

    async def prune_networks(self, token: CancellationToken | None = None) -> PruneResult:
        return await (await self._backend()).prune_networks(token=token)

    async def create_network(
        self, name: str, driver: DriverType = "bridge", token: CancellationToken | None = None
    ) -> str:
        return await (await self._backend()).create_network(name, driver=driver, token=token)

    async def remove_network(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).remove_network(ref, token=token)

    # Volumes

    async def get_volumes(self, token: CancellationToken | None = None) -> list[DockerVolume]:
        return await (await self._backend()).get_volumes(token=token)

    async def inspect_volume(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerVolumeInspection:
        return await (await self._backend()).inspect_volume(ref, token=token)

    async def prune_volumes(self, token: CancellationToken | None = None) -> PruneResult:
        return await (await self._backend()).prune_volumes(token=token)

    async def create_volume(
        self,
        name: str,
        driver: str = "local",
        labels: dict[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> DockerVolume:
        return await (await self._backend()).create_volume(name, driver=driver, labels=labels, token=token)

    async def remove_volume(self, ref: str, token: CancellationToken | None = None) -> None:
        await (await self._backend()).remove_volume(ref, token=token)

    # Contexts

    async def get_contexts(self, token: CancellationToken | None = None) -> list[DockerContext]:
        # Answered here so contexts stay listable whichever backend is installed
        if token is not None:
            token.raise_if_cancelled()
        return await self.context_manager.get_contexts()
