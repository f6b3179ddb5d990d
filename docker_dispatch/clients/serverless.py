"""Serverless client: the remote backend family, over gRPC.

The serverless API only exposes container listing, stopping and deletion;
every other operation falls through to ``DockerApiClient`` and raises
``NotSupportedError``. Requests and responses are protobuf messages of the
``containers.v1`` service (see ``serverless_protos``).
"""

from typing import Any

import grpc
import structlog
from grpc import aio

from ..constants import FAILED_TO_CONNECT_MESSAGE, SERVERLESS_CONTAINERS_SERVICE
from ..core.cancellation import CancellationToken, race
from ..core.exceptions import DockerConnectionError, DockerTimeoutError
from ..core.settings import DockerDispatchSettings, get_settings
from ..models import BackendFamily, DockerContainer, PortMapping
from . import serverless_protos
from .base import DockerApiClient
from .translation import get_compose_project_name

logger = structlog.get_logger()

CONTEXT_CHANGED_REASON = "Docker context changed"

# Serverless status -> normalized container state
_STATE_MAP = {
    "running": "running",
    "stopped": "exited",
    "terminated": "exited",
    "succeeded": "exited",
    "failed": "dead",
    "pending": "starting",
    "waiting": "starting",
    "creating": "created",
    "paused": "paused",
}


def _labels(raw: list[str] | dict[str, str] | None) -> dict[str, str]:
    """Labels arrive either as a mapping or as a list of ``key=value`` strings."""
    if isinstance(raw, dict):
        return raw
    labels = {}
    for item in raw or []:
        key, _, value = item.partition("=")
        labels[key] = value
    return labels


def container_from_serverless(info: dict[str, Any]) -> DockerContainer:
    """Translate one container of the serverless List response."""
    status = info.get("status") or ""
    state = _STATE_MAP.get(status.lower(), "created")
    labels = _labels(info.get("labels"))

    ports = [
        PortMapping(
            container_port=port["container_port"],
            host_port=port.get("host_port"),
            host_ip=port.get("host_ip"),
            protocol=(port.get("protocol") or "tcp").lower(),
        )
        for port in info.get("ports") or []
        if port.get("container_port")
    ]

    return DockerContainer(
        id=info["id"],
        name=info["id"],
        created_time=0,  # Not reported by the serverless API
        tree_id=f"{info['id']}{state}",
        state=state,
        status=status,
        image=info.get("image") or "",
        ports=ports,
        labels=labels,
        compose_project_name=get_compose_project_name(labels),
    )


class ServerlessClient(DockerApiClient):
    """Docker API client backed by the serverless gRPC API."""

    family = BackendFamily.SERVERLESS

    def __init__(
        self,
        address: str | None = None,
        settings: DockerDispatchSettings | None = None,
        channel: aio.Channel | None = None,
    ):
        self.settings = settings or get_settings()
        self.address = address or self.settings.serve_address
        self._channel = channel
        self._context_changing = CancellationToken()

    def _get_channel(self) -> aio.Channel:
        if self._channel is None:
            self._channel = aio.insecure_channel(self.address)
            logger.debug("Opened serverless API channel", address=self.address)
        return self._channel

    async def _unary(
        self, method: str, request: dict[str, Any], token: CancellationToken | None = None
    ) -> dict[str, Any]:
        """Invoke one unary method of the containers service."""
        rpc = self._get_channel().unary_unary(
            f"/{SERVERLESS_CONTAINERS_SERVICE}/{method}",
            request_serializer=serverless_protos.request_serializer(method),
            response_deserializer=serverless_protos.response_deserializer(method),
        )
        timeout = self.settings.docker_call_timeout

        async def invoke() -> dict[str, Any]:
            return await rpc(request, timeout=timeout)

        try:
            return await race(
                invoke,
                timeout=timeout,
                signals=(self._context_changing, token),
                operation=method,
            )
        except aio.AioRpcError as e:
            code = e.code()
            if code == grpc.StatusCode.UNAVAILABLE:
                logger.warning("Serverless API unreachable", method=method, error=e.details())
                raise DockerConnectionError(FAILED_TO_CONNECT_MESSAGE.format(error=e.details())) from e
            if code == grpc.StatusCode.DEADLINE_EXCEEDED:
                raise DockerTimeoutError(f"{method} timed out after {timeout} seconds") from e
            raise

    def notify_context_changing(self) -> None:
        self._context_changing.cancel(CONTEXT_CHANGED_REASON)

    async def dispose(self) -> None:
        self.notify_context_changing()
        channel, self._channel = self._channel, None
        if channel is not None:
            await channel.close()
            logger.debug("Closed serverless API channel", address=self.address)

    async def get_containers(self, token: CancellationToken | None = None) -> list[DockerContainer]:
        response = await self._unary("List", {"all": True}, token)
        return [container_from_serverless(info) for info in response.get("containers") or []]

    async def stop_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._unary("Stop", {"id": ref}, token)

    async def remove_container(self, ref: str, token: CancellationToken | None = None) -> None:
        await self._unary("Delete", {"id": ref, "force": True}, token)
