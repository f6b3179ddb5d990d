"""Image-related data models."""

from typing import Any

from pydantic import Field

from .common import DockerObject


class DockerImage(DockerObject):
    """One repo:tag of an image; an image with several tags yields several records."""

    repository: str
    tag: str
    size: int = 0


class DockerImageInspection(DockerObject):
    """Detailed image information."""

    repo_tags: list[str] = Field(default_factory=list)
    repo_digests: list[str] = Field(default_factory=list)
    exposed_ports: list[str] = Field(default_factory=list)
    os: str | None = None
    architecture: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
