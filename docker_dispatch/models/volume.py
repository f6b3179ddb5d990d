"""Volume data models."""

from typing import Any

from pydantic import Field

from .common import DockerObject


class DockerVolume(DockerObject):
    """A volume; volumes have no id, only a name."""

    id: str = ""
    driver: str = "local"
    mountpoint: str = ""
    scope: str = "local"
    labels: dict[str, str] = Field(default_factory=dict)


class DockerVolumeInspection(DockerVolume):
    """Detailed volume information."""

    raw: dict[str, Any] = Field(default_factory=dict)
