"""Models shared by every resource kind."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DockerOSType = Literal["linux", "windows"]


class BackendFamily(Enum):
    """Which implementation currently serves Docker calls."""

    LOCAL = "local"
    SERVERLESS = "serverless"


class DispatchModel(BaseModel):
    """Base model with common settings."""

    model_config = ConfigDict(frozen=True)

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict with exclude_none by default."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


class DockerObject(DispatchModel):
    """Fields every listed Docker resource carries."""

    id: str
    name: str
    created_time: int = Field(description="Creation time in epoch milliseconds")
    # Identity plus mutable state, so consumers can detect state changes
    tree_id: str


class DockerInfo(DispatchModel):
    """Engine-wide information."""

    os_type: DockerOSType
    server_version: str | None = None
    name: str | None = None
    containers: int | None = None
    images: int | None = None


class PruneResult(DispatchModel):
    """Outcome of any prune operation."""

    objects_removed: int = 0
    space_freed: int = Field(0, description="Bytes reclaimed")
