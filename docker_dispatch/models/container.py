"""Container-related data models."""

from typing import Annotated, Any, Literal

from pydantic import Field, field_validator

from .common import DispatchModel, DockerObject

ContainerState = Literal[
    "created",
    "running",
    "paused",
    "restarting",
    "removing",
    "stopped",
    "starting",
    "exited",
    "dead",
]
ProtocolLiteral = Literal["tcp", "udp", "sctp"]


class PortMapping(DispatchModel):
    """Container port published on the host."""

    container_port: Annotated[int, Field(ge=1, le=65535, description="Container port number")]
    host_port: int | None = None
    host_ip: str | None = None
    protocol: ProtocolLiteral = "tcp"

    @field_validator("container_port", "host_port", mode="before")
    @classmethod
    def parse_port_numbers(cls, v: str | int | None) -> int | None:
        """Parse port numbers reported as strings."""
        if v is None or isinstance(v, int):
            return v

        v = str(v).strip()
        if not v:
            return None
        try:
            return int(v)
        except ValueError as e:
            raise ValueError(f"Invalid port number: '{v}' (must be numeric)") from e


class DockerContainer(DockerObject):
    """A container as listed by a backend."""

    state: ContainerState
    status: str = ""
    image: str = ""
    image_id: str = ""
    ports: list[PortMapping] = Field(default_factory=list)
    networks: dict[str, dict[str, Any]] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    compose_project_name: str


class DockerContainerInspection(DockerObject):
    """Detailed container information."""

    state: ContainerState
    image: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    # "80/tcp" -> [{"HostIp": "0.0.0.0", "HostPort": "8080"}]
    ports: dict[str, list[dict[str, str]] | None] = Field(default_factory=dict)
    isolation: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
