"""Docker context data models."""

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from .common import DispatchModel

# Opaque result of `docker context inspect`
DockerContextInspection = dict[str, Any]


class DockerContext(DispatchModel):
    """One configured engine endpoint, as reported by `docker context ls`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(alias="Name")
    description: str = Field("", alias="Description")
    docker_endpoint: str = Field("", alias="DockerEndpoint")
    current: bool = Field(False, alias="Current")
    context_type: str | None = Field(None, alias="ContextType")
    error: str | None = Field(None, alias="Error")

    @field_validator("description", "docker_endpoint", mode="before")
    @classmethod
    def none_to_empty(cls, v: str | None) -> str:
        return v or ""
