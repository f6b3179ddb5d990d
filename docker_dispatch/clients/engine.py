"""Engine client: the local backend family, over the Docker Engine API.

Uses the low-level ``docker.APIClient`` so raw API dictionaries can be
translated into normalized records. SDK calls are blocking; each one runs
in a worker thread and is raced against the per-call timeout, the
context-changing signal and the caller's cancellation token.
"""

import asyncio
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import docker
import requests
import structlog
from docker.errors import DockerException
from docker.utils import kwargs_from_env

from ..constants import FAILED_TO_CONNECT_MESSAGE, NONE_TAG
from ..core.cancellation import CancellationToken, race
from ..core.exceptions import DockerConnectionError, OperationCancelledError
from ..core.settings import DockerDispatchSettings, get_settings
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
from . import translation
from .base import DockerApiClient

if TYPE_CHECKING:
    from ..core.docker_context import DockerContextManager

logger = structlog.get_logger()

T = TypeVar("T")

CONTEXT_CHANGED_REASON = "Docker context changed"


def _is_connection_error(error: BaseException) -> bool:
    """Whether ``error`` means the engine could not be reached at all."""
    if isinstance(error, (requests.exceptions.ConnectionError, ConnectionError, FileNotFoundError)):
        return True
    # Raised while negotiating the API version with an unreachable engine
    return isinstance(error, DockerException) and (
        "Error while fetching server API version" in str(error)
    )


class EngineClient(DockerApiClient):
    """Docker API client backed by a local (or directly reachable) engine."""

    family = BackendFamily.LOCAL

    def __init__(
        self,
        endpoint: str | None = None,
        settings: DockerDispatchSettings | None = None,
        context_manager: "DockerContextManager | None" = None,
        api_client: docker.APIClient | None = None,
    ):
        self.endpoint = endpoint
        self.settings = settings or get_settings()
        self._context_manager = context_manager
        self._api = api_client
        # Bumped by retarget/dispose; a client built for an older generation is discarded
        self._generation = 0
        self._api_lock = threading.Lock()
        self._context_changing = CancellationToken()

    def _build_api(self, endpoint: str | None) -> docker.APIClient:
        kwargs = kwargs_from_env()
        if endpoint:
            kwargs["base_url"] = endpoint
        # version="auto" asks the engine for its API version over the network
        return docker.APIClient(
            version="auto",
            timeout=self.settings.docker_call_timeout,
            use_ssh_client=False,
            **kwargs,
        )

    def _get_api(self) -> docker.APIClient:
        """Create the SDK client on first use; runs on a worker thread.

        The lock only guards the pointer, never the network round trip, so
        ``retarget`` and ``dispose`` on the event loop never wait for it.
        """
        with self._api_lock:
            if self._api is not None:
                return self._api
            generation, endpoint = self._generation, self.endpoint

        api = self._build_api(endpoint)

        with self._api_lock:
            if generation == self._generation and self._api is None:
                self._api = api
                logger.debug("Created Docker API client", endpoint=endpoint)
                return api
            current = self._api if generation == self._generation else None

        api.close()
        if current is not None:
            return current
        raise OperationCancelledError(CONTEXT_CHANGED_REASON)

    async def _call(
        self,
        operation: str,
        func: Callable[[docker.APIClient], T],
        token: CancellationToken | None = None,
    ) -> T:
        """Run one SDK call with timeout, cancellation and error translation."""

        def invoke() -> T:
            return func(self._get_api())

        try:
            return await race(
                lambda: asyncio.to_thread(invoke),
                timeout=self.settings.docker_call_timeout,
                signals=(self._context_changing, token),
                operation=operation,
            )
        except Exception as e:
            if _is_connection_error(e):
                logger.warning("Docker engine unreachable", operation=operation, error=str(e))
                raise DockerConnectionError(FAILED_TO_CONNECT_MESSAGE.format(error=e)) from e
            raise

    def notify_context_changing(self) -> None:
        self._context_changing.cancel(CONTEXT_CHANGED_REASON)

    async def retarget(self, endpoint: str | None) -> None:
        """Point this client at another engine after a same-family context change.

        Calls in flight against the previous engine fail fast; later calls
        connect to ``endpoint``.
        """
        self.notify_context_changing()
        with self._api_lock:
            api, self._api = self._api, None
            self._generation += 1
            previous, self.endpoint = self.endpoint, endpoint
            self._context_changing = CancellationToken()
        if api is not None:
            await asyncio.to_thread(api.close)
        logger.info("Docker engine endpoint changed", old_endpoint=previous, new_endpoint=endpoint)

    async def dispose(self) -> None:
        self.notify_context_changing()
        with self._api_lock:
            api, self._api = self._api, None
            self._generation += 1
        if api is not None:
            await asyncio.to_thread(api.close)
            logger.debug("Closed Docker API client", endpoint=self.endpoint)

    async def info(self, token: CancellationToken | None = None) -> DockerInfo:
        result = await self._call("info", lambda api: api.info(), token)
        return DockerInfo(
            os_type=(result.get("OSType") or "linux").lower(),
            server_version=result.get("ServerVersion"),
            name=result.get("Name"),
            containers=result.get("Containers"),
            images=result.get("Images"),
        )

    # Containers

    async def get_containers(self, token: CancellationToken | None = None) -> list[DockerContainer]:
        result = await self._call("get_containers", lambda api: api.containers(all=True), token)
        return [translation.container_from_api(info) for info in result]

    async def inspect_container(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerContainerInspection:
        result = await self._call("inspect_container", lambda api: api.inspect_container(ref), token)
        return translation.container_inspection_from_api(result)

    async def get_container_logs(
        self, ref: str, tail: int | None = None, token: CancellationToken | None = None
    ) -> str:
        # tail=0 asks for no lines; only None means the whole log
        lines = "all" if tail is None else tail
        result = await self._call(
            "get_container_logs",
            lambda api: api.logs(ref, stdout=True, stderr=True, tail=lines),
            token,
        )
        return result.decode("utf-8", errors="replace") if isinstance(result, bytes) else result

    async def prune_containers(self, token: CancellationToken | None = None) -> PruneResult:
        result = await self._call("prune_containers", lambda api: api.prune_containers(), token)
        return translation.prune_result_from_api(result, "ContainersDeleted")

    async def start_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("start_container", lambda api: api.start(ref), token)

    async def restart_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("restart_container", lambda api: api.restart(ref), token)

    async def stop_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("stop_container", lambda api: api.stop(ref), token)

    async def remove_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("remove_container", lambda api: api.remove_container(ref, force=True), token)

    # Images

    async def get_images(self, token: CancellationToken | None = None) -> list[DockerImage]:
        result = await self._call(
            "get_images", lambda api: api.images(filters={"dangling": False}), token
        )
        images: list[DockerImage] = []
        for info in result:
            images.extend(translation.images_from_api(info))
        return images

    async def inspect_image(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerImageInspection:
        result = await self._call("inspect_image", lambda api: api.inspect_image(ref), token)
        return translation.image_inspection_from_api(result)

    async def prune_images(self, token: CancellationToken | None = None) -> PruneResult:
        result = await self._call("prune_images", lambda api: api.prune_images(), token)
        return translation.prune_result_from_api(result, "ImagesDeleted")

    async def tag_image(self, ref: str, full_tag: str, token: CancellationToken | None = None) -> None:
        repository, tag = translation.split_full_tag(full_tag)
        await self._call("tag_image", lambda api: api.tag(ref, repository, tag), token)

    async def remove_image(self, ref: str, token: CancellationToken | None = None) -> None:
        if ref.endswith(f":{NONE_TAG}"):
            # An image re-tagged away by a newer pull can only be removed by digest
            info = await self._call("inspect_image", lambda api: api.inspect_image(ref), token)
            digests = info.get("RepoDigests") or []
            ref = digests[0] if digests else info["Id"]

        await self._call("remove_image", lambda api: api.remove_image(ref, force=True), token)

    # Networks

    async def get_networks(self, token: CancellationToken | None = None) -> list[DockerNetwork]:
        result = await self._call("get_networks", lambda api: api.networks(), token)
        return [translation.network_from_api(info) for info in result]

    async def inspect_network(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerNetworkInspection:
        result = await self._call("inspect_network", lambda api: api.inspect_network(ref), token)
        return translation.network_inspection_from_api(result)

    async def prune_networks(self, token: CancellationToken | None = None) -> PruneResult:
        result = await self._call("prune_networks", lambda api: api.prune_networks(), token)
        return translation.prune_result_from_api(result, "NetworksDeleted")

    async def create_network(
        self, name: str, driver: DriverType = "bridge", token: CancellationToken | None = None
    ) -> str:
        result = await self._call(
            "create_network", lambda api: api.create_network(name, driver=driver), token
        )
        logger.info("Network created", name=name, driver=driver)
        return result["Id"]

    async def remove_network(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("remove_network", lambda api: api.remove_network(ref), token)

    # Volumes

    async def get_volumes(self, token: CancellationToken | None = None) -> list[DockerVolume]:
        result = await self._call("get_volumes", lambda api: api.volumes(), token)
        return [translation.volume_from_api(info) for info in (result or {}).get("Volumes") or []]

    async def inspect_volume(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerVolumeInspection:
        result = await self._call("inspect_volume", lambda api: api.inspect_volume(ref), token)
        return translation.volume_inspection_from_api(result)

    async def prune_volumes(self, token: CancellationToken | None = None) -> PruneResult:
        result = await self._call("prune_volumes", lambda api: api.prune_volumes(), token)
        return translation.prune_result_from_api(result, "VolumesDeleted")

    async def create_volume(
        self,
        name: str,
        driver: str = "local",
        labels: dict[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> DockerVolume:
        result: dict[str, Any] = await self._call(
            "create_volume", lambda api: api.create_volume(name, driver=driver, labels=labels), token
        )
        logger.info("Volume created", name=name, driver=driver)
        return translation.volume_from_api(result)

    async def remove_volume(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._call("remove_volume", lambda api: api.remove_volume(ref, force=True), token)

    # Contexts

    async def get_contexts(self, token: CancellationToken | None = None) -> list[DockerContext]:
        if self._context_manager is None:
            raise self._not_supported("get_contexts")
        return await race(
            self._context_manager.get_contexts,
            timeout=self.settings.context_command_timeout,
            signals=(token,),
            operation="get_contexts",
        )
