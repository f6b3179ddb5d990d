"""Docker API dispatch: one async client surface over interchangeable Docker backends."""

from .clients import DockerClientDispatcher, EngineClient, ServerlessClient  # noqa: F401
from .core.cancellation import CancellationToken  # noqa: F401
from .core.docker_context import DockerContextManager  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "DockerClientDispatcher",
    "DockerContextManager",
    "EngineClient",
    "ServerlessClient",
]
