"""The DockerApiClient surface shared by every backend.

Every operation defaults to raising ``NotSupportedError``; a backend
overrides exactly the operations its wire protocol can serve.
"""

from typing import ClassVar

from ..core.cancellation import CancellationToken
from ..core.exceptions import NotSupportedError
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


class DockerApiClient:
    """Asynchronous Docker API surface implemented by each backend family."""

    family: ClassVar[BackendFamily]

    def _not_supported(self, operation: str) -> NotSupportedError:
        return NotSupportedError(operation, self.family.value)

    def notify_context_changing(self) -> None:
        """Fail this backend's in-flight calls; a different backend is being installed."""

    async def dispose(self) -> None:
        """Release connections held by this backend."""

    async def info(self, token: CancellationToken | None = None) -> DockerInfo:
        raise self._not_supported("info")

    # Containers

    async def get_containers(self, token: CancellationToken | None = None) -> list[DockerContainer]:
        raise self._not_supported("get_containers")

    async def inspect_container(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerContainerInspection:
        raise self._not_supported("inspect_container")

    async def get_container_logs(
        self, ref: str, tail: int | None = None, token: CancellationToken | None = None
    ) -> str:
        raise self._not_supported("get_container_logs")

    async def prune_containers(self, token: CancellationToken | None = None) -> PruneResult:
        raise self._not_supported("prune_containers")

    async def start_container(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("start_container")

    async def restart_container(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("restart_container")

    async def stop_container(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("stop_container")

    async def remove_container(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("remove_container")

    # Images

    async def get_images(self, token: CancellationToken | None = None) -> list[DockerImage]:
        raise self._not_supported("get_images")

    async def inspect_image(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerImageInspection:
        raise self._not_supported("inspect_image")

    async def prune_images(self, token: CancellationToken | None = None) -> PruneResult:
        raise self._not_supported("prune_images")

    async def tag_image(self, ref: str, full_tag: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("tag_image")

    async def remove_image(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("remove_image")

    # Networks

    async def get_networks(self, token: CancellationToken | None = None) -> list[DockerNetwork]:
        raise self._not_supported("get_networks")

    async def inspect_network(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerNetworkInspection:
        raise self._not_supported("inspect_network")

    async def prune_networks(self, token: CancellationToken | None = None) -> PruneResult:
        raise self._not_supported("prune_networks")

    async def create_network(
        self, name: str, driver: DriverType = "bridge", token: CancellationToken | None = None
    ) -> str:
        raise self._not_supported("create_network")

    async def remove_network(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("remove_network")

    # Volumes

    async def get_volumes(self, token: CancellationToken | None = None) -> list[DockerVolume]:
        raise self._not_supported("get_volumes")

    async def inspect_volume(
        self, ref: str, token: CancellationToken | None = None
    ) -> DockerVolumeInspection:
        raise self._not_supported("inspect_volume")

    async def prune_volumes(self, token: CancellationToken | None = None) -> PruneResult:
        raise self._not_supported("prune_volumes")

    async def create_volume(
        self,
        name: str,
        driver: str = "local",
        labels: dict[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> DockerVolume:
        raise self._not_supported("create_volume")

    async def remove_volume(self, ref: str, token: CancellationToken | None = None) -> None:
        raise self._not_supported("remove_volume")

    # Contexts

    async def get_contexts(self, token: CancellationToken | None = None) -> list[DockerContext]:
        raise self._not_supported("get_contexts")
