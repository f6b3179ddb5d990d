"""Centralized constants for Docker dispatch."""

# Docker Labels
DOCKER_COMPOSE_PROJECT = "com.docker.compose.project"

# Containers without a compose project label are grouped here
NON_COMPOSE_GROUP_NAME = "Other Containers"

# Image tag placeholder used by the engine for untagged images
NONE_TAG = "<none>"

# Default context synthesized when no user contexts exist
DEFAULT_CONTEXT_NAME = "default"
DEFAULT_CONTEXT_DESCRIPTION = "Current DOCKER_HOST based configuration"

# Endpoints and context types served by the serverless backend
SERVERLESS_CONTEXT_TYPES = frozenset({"aci", "ecs"})

# Serverless gRPC service
SERVERLESS_CONTAINERS_SERVICE = "com.docker.api.protos.containers.v1.Containers"

FAILED_TO_CONNECT_MESSAGE = "Failed to connect. Is Docker installed and running? Error: {error}"
