"""Translation of raw engine responses into normalized records.

Raw dictionaries come from the Docker Engine API (via the low-level
``docker.APIClient``); every helper here is a pure function so it can be
tested without a daemon.
"""

from typing import Any

from ..constants import DOCKER_COMPOSE_PROJECT, NON_COMPOSE_GROUP_NAME, NONE_TAG
from ..models import (
    DockerContainer,
    DockerContainerInspection,
    DockerImage,
    DockerImageInspection,
    DockerNetwork,
    DockerNetworkInspection,
    DockerVolume,
    DockerVolumeInspection,
    PortMapping,
    PruneResult,
)
from ..utils import to_epoch_ms


def get_container_name(names: list[str] | None) -> str:
    """Pick the canonical display name from a container's aliases.

    Linked containers may have names containing '/'; their one canonical
    name will not.

    Examples:
        >>> get_container_name(["/web_1", "/myapp_web_1"])
        'web_1'
        >>> get_container_name(["/app/db", "/db_1"])
        'db_1'
        >>> get_container_name(["/app/db"])
        'app/db'
    """
    if not names:
        return ""

    stripped = [name[1:] if name.startswith("/") else name for name in names]
    canonical = next((name for name in stripped if "/" not in name), None)
    return canonical if canonical is not None else stripped[0]


def get_compose_project_name(labels: dict[str, str] | None) -> str:
    """Compose project a container belongs to, or the shared non-compose group."""
    if labels and labels.get(DOCKER_COMPOSE_PROJECT):
        return labels[DOCKER_COMPOSE_PROJECT]
    return NON_COMPOSE_GROUP_NAME


def get_full_tag_from_digest(repo_digests: list[str] | None) -> str:
    """Synthesize a tag for an image that has only digests.

    Examples:
        >>> get_full_tag_from_digest(["alpine@sha256:abc"])
        'alpine:<none>'
        >>> get_full_tag_from_digest([])
        '<none>:<none>'
    """
    repo = NONE_TAG
    if repo_digests:
        index = repo_digests[0].find("@")
        if index > 0:
            repo = repo_digests[0][:index]
    return f"{repo}:{NONE_TAG}"


def split_full_tag(full_tag: str) -> tuple[str, str]:
    """Split ``repo:tag`` at the tag separator, ignoring registry ports.

    Examples:
        >>> split_full_tag("localhost:5000/app:1.0")
        ('localhost:5000/app', '1.0')
        >>> split_full_tag("localhost:5000/app")
        ('localhost:5000/app', 'latest')
    """
    index = full_tag.rfind(":")
    if index <= full_tag.rfind("/"):
        return full_tag, "latest"
    return full_tag[:index], full_tag[index + 1 :]


def _port_mappings(ports: list[dict[str, Any]] | None) -> list[PortMapping]:
    mappings = []
    for port in ports or []:
        if not port.get("PrivatePort"):
            continue
        mappings.append(
            PortMapping(
                container_port=port["PrivatePort"],
                host_port=port.get("PublicPort"),
                host_ip=port.get("IP"),
                protocol=port.get("Type", "tcp"),
            )
        )
    return mappings


def container_from_api(info: dict[str, Any]) -> DockerContainer:
    """Translate one entry of the container list endpoint."""
    state = info.get("State") or "created"
    labels = info.get("Labels") or {}
    networks = (info.get("NetworkSettings") or {}).get("Networks") or {}

    return DockerContainer(
        id=info["Id"],
        name=get_container_name(info.get("Names")),
        created_time=to_epoch_ms(info.get("Created")),
        tree_id=f"{info['Id']}{state}",
        state=state,
        status=info.get("Status") or "",
        image=info.get("Image") or "",
        image_id=info.get("ImageID") or "",
        ports=_port_mappings(info.get("Ports")),
        networks=networks,
        labels=labels,
        compose_project_name=get_compose_project_name(labels),
    )


def container_inspection_from_api(info: dict[str, Any]) -> DockerContainerInspection:
    config = info.get("Config") or {}
    state = (info.get("State") or {}).get("Status") or "created"

    return DockerContainerInspection(
        id=info["Id"],
        name=info.get("Name", "").lstrip("/"),
        created_time=to_epoch_ms(info.get("Created")),
        tree_id="",
        state=state,
        image=config.get("Image") or "",
        labels=config.get("Labels") or {},
        ports=(info.get("NetworkSettings") or {}).get("Ports") or {},
        isolation=(info.get("HostConfig") or {}).get("Isolation"),
        raw=info,
    )


def images_from_api(info: dict[str, Any]) -> list[DockerImage]:
    """Translate one image into a record per repo:tag.

    An image without usable tags is surfaced once, under a tag synthesized
    from its first digest.
    """
    tags = [tag for tag in info.get("RepoTags") or [] if tag != f"{NONE_TAG}:{NONE_TAG}"]
    if not tags:
        tags = [get_full_tag_from_digest(info.get("RepoDigests"))]

    created_time = to_epoch_ms(info.get("Created"))
    images = []
    for full_tag in tags:
        repository, tag = split_full_tag(full_tag)
        images.append(
            DockerImage(
                id=info["Id"],
                name=full_tag,
                created_time=created_time,
                tree_id=f"{full_tag}{info['Id']}",
                repository=repository,
                tag=tag,
                size=info.get("Size") or 0,
            )
        )
    return images


def image_inspection_from_api(info: dict[str, Any]) -> DockerImageInspection:
    config = info.get("Config") or {}
    repo_tags = info.get("RepoTags") or []

    return DockerImageInspection(
        id=info["Id"],
        name=repo_tags[0] if repo_tags else get_full_tag_from_digest(info.get("RepoDigests")),
        created_time=to_epoch_ms(info.get("Created")),
        tree_id="",
        repo_tags=repo_tags,
        repo_digests=info.get("RepoDigests") or [],
        exposed_ports=sorted((config.get("ExposedPorts") or {}).keys()),
        os=info.get("Os"),
        architecture=info.get("Architecture"),
        raw=info,
    )


def network_from_api(info: dict[str, Any]) -> DockerNetwork:
    return DockerNetwork(
        id=info["Id"],
        name=info.get("Name") or "",
        created_time=to_epoch_ms(info.get("Created")),
        tree_id=info["Id"],
        driver=info.get("Driver") or "",
        scope=info.get("Scope") or "local",
        internal=bool(info.get("Internal")),
        labels=info.get("Labels") or {},
    )


def network_inspection_from_api(info: dict[str, Any]) -> DockerNetworkInspection:
    network = network_from_api(info)
    return DockerNetworkInspection(
        **network.model_dump(),
        containers=info.get("Containers") or {},
        raw=info,
    )


def volume_from_api(info: dict[str, Any]) -> DockerVolume:
    return DockerVolume(
        name=info["Name"],
        created_time=to_epoch_ms(info.get("CreatedAt")),
        tree_id=info["Name"],
        driver=info.get("Driver") or "local",
        mountpoint=info.get("Mountpoint") or "",
        scope=info.get("Scope") or "local",
        labels=info.get("Labels") or {},
    )


def volume_inspection_from_api(info: dict[str, Any]) -> DockerVolumeInspection:
    volume = volume_from_api(info)
    return DockerVolumeInspection(**volume.model_dump(), raw=info)


def prune_result_from_api(result: dict[str, Any] | None, deleted_key: str) -> PruneResult:
    """Normalize any prune response; networks never report reclaimed space."""
    result = result or {}
    return PruneResult(
        objects_removed=len(result.get(deleted_key) or []),
        space_freed=result.get("SpaceReclaimed") or 0,
    )
