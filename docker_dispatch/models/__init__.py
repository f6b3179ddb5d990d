"""Data models for Docker dispatch."""

from .common import (  # noqa: F401
    BackendFamily,
    DockerInfo,
    DockerObject,
    DockerOSType,
    PruneResult,
)
from .container import (  # noqa: F401
    ContainerState,
    DockerContainer,
    DockerContainerInspection,
    PortMapping,
)
from .context import (  # noqa: F401
    DockerContext,
    DockerContextInspection,
)
from .image import (  # noqa: F401
    DockerImage,
    DockerImageInspection,
)
from .network import (  # noqa: F401
    DockerNetwork,
    DockerNetworkInspection,
    DriverType,
)
from .volume import (  # noqa: F401
    DockerVolume,
    DockerVolumeInspection,
)

__all__ = [
    # Common models
    "BackendFamily",
    "DockerInfo",
    "DockerObject",
    "DockerOSType",
    "PruneResult",
    # Container models
    "ContainerState",
    "DockerContainer",
    "DockerContainerInspection",
    "PortMapping",
    # Context models
    "DockerContext",
    "DockerContextInspection",
    # Image models
    "DockerImage",
    "DockerImageInspection",
    # Network and volume models
    "DockerNetwork",
    "DockerNetworkInspection",
    "DriverType",
    "DockerVolume",
    "DockerVolumeInspection",
]
