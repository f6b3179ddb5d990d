"""Core exceptions for Docker API dispatch operations."""


class DockerDispatchError(Exception):
    """Base exception for Docker dispatch operations."""

    # Whether the failure looks like a software defect worth reporting
    reportable: bool = True


class DockerCommandError(DockerDispatchError):
    """Docker command execution failed."""


class DockerContextError(DockerDispatchError):
    """Docker context operation failed."""


class ContextParseError(DockerContextError):
    """Docker context enumeration produced output that could not be parsed."""


class NotSupportedError(DockerDispatchError):
    """The active backend does not implement the requested operation."""

    reportable = False

    def __init__(self, operation: str, backend: str):
        self.operation = operation
        self.backend = backend
        super().__init__("This action is not supported in the current Docker context.")

    def __str__(self) -> str:
        return f"{self.args[0]} (operation: {self.operation}, backend: {self.backend})"


class DockerTimeoutError(DockerDispatchError):
    """A Docker call did not finish within its time bound."""

    reportable = False


class DockerConnectionError(DockerDispatchError):
    """The Docker engine could not be reached."""

    reportable = False


class OperationCancelledError(DockerDispatchError):
    """The call was cancelled by the caller or by a context change."""

    reportable = False
