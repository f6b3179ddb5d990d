"""Docker API clients and the dispatcher selecting between them.

- EngineClient: local engine over the Docker Engine API
- ServerlessClient: remote serverless backend over gRPC
- DockerClientDispatcher: facade forwarding to whichever one is installed
"""

from .base import DockerApiClient
from .dispatcher import DockerClientDispatcher, family_for_context
from .engine import EngineClient
from .serverless import ServerlessClient

__all__ = [
    "DockerApiClient",
    "DockerClientDispatcher",
    "EngineClient",
    "ServerlessClient",
    "family_for_context",
]
