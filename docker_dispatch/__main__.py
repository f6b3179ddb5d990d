"""Command line entry point: query Docker through the current context's backend."""

import argparse
import asyncio
import json
import sys
from typing import Any

from docker.errors import DockerException
from pydantic import BaseModel

from .clients import DockerClientDispatcher
from .core.docker_context import DockerContextManager
from .core.exceptions import DockerDispatchError
from .core.logging_config import get_logger, setup_logging
from .core.settings import get_settings
from .utils import format_size

LIST_COMMANDS = {
    "contexts": "get_contexts",
    "containers": "get_containers",
    "images": "get_images",
    "networks": "get_networks",
    "volumes": "get_volumes",
}

PRUNE_COMMANDS = {
    "containers": "prune_containers",
    "images": "prune_images",
    "networks": "prune_networks",
    "volumes": "prune_volumes",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="docker-dispatch", description="Docker API dispatch across Docker contexts"
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("info", help="Show engine information")
    for name in LIST_COMMANDS:
        subparsers.add_parser(name, help=f"List {name}")

    prune = subparsers.add_parser("prune", help="Prune unused resources")
    prune.add_argument("kind", choices=sorted(PRUNE_COMMANDS))

    use = subparsers.add_parser("use", help="Select the current Docker context")
    use.add_argument("context")

    logs = subparsers.add_parser("logs", help="Print container logs")
    logs.add_argument("container")
    logs.add_argument("--tail", type=int, default=None)

    return parser.parse_args(argv)


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


async def run(args: argparse.Namespace) -> Any:
    """Execute one command against the dispatcher."""
    context_manager = DockerContextManager()
    try:
        if args.command == "use":
            await context_manager.use(args.context)
            return {"current": args.context}

        async with DockerClientDispatcher(context_manager) as client:
            if args.command == "info":
                return await client.info()
            if args.command == "logs":
                return await client.get_container_logs(args.container, tail=args.tail)
            if args.command == "prune":
                result = await getattr(client, PRUNE_COMMANDS[args.kind])()
                return {**result.model_dump(), "space_freed_human": format_size(result.space_freed)}
            return await getattr(client, LIST_COMMANDS[args.command])()
    finally:
        await context_manager.dispose()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level)
    logger = get_logger()

    try:
        result = asyncio.run(run(args))
    except (DockerDispatchError, DockerException) as e:
        logger.debug("Command failed", command=args.command, error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    if isinstance(result, str):
        print(result, end="")
    else:
        print(json.dumps(_to_jsonable(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
