"""Network data models."""

from typing import Any, Literal

from pydantic import Field

from .common import DockerObject

DriverType = Literal["bridge", "host", "overlay", "macvlan", "ipvlan", "none", "null", "nat", "transparent"]


class DockerNetwork(DockerObject):
    """A network as listed by a backend."""

    driver: str = "bridge"
    scope: str = "local"
    internal: bool = False
    labels: dict[str, str] = Field(default_factory=dict)


class DockerNetworkInspection(DockerNetwork):
    """Detailed network information."""

    containers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)
