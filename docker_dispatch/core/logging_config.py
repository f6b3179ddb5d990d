"""structlog setup for Docker dispatch: stderr output plus an optional JSON file."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

from .settings import get_settings

# HTTP and SSH transports used by the docker SDK are chatty at DEBUG
QUIET_LOGGERS = ("urllib3", "docker", "paramiko", "grpc")


def _handler(handler: logging.Handler, level: int, renderer: Any) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(ProcessorFormatter(processor=renderer))
    return handler


def setup_logging(
    log_level: str | None = None,
    log_file: Path | str | None = None,
    max_file_size_mb: int = 10,
) -> None:
    """Route structlog events through stdlib logging handlers.

    Args:
        log_level: Level name; defaults to the LOG_LEVEL setting
        log_file: Optional JSON log file, truncated when it reaches the size cap
        max_file_size_mb: Size cap of ``log_file`` (no backups kept)
    """
    level_name = (log_level or get_settings().log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    console_renderer = (
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer()
    )
    handlers = [_handler(logging.StreamHandler(sys.stderr), level, console_renderer)]

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=max_file_size_mb * 1024 * 1024, backupCount=0, encoding="utf-8"
        )
        handlers.append(_handler(file_handler, level, structlog.processors.JSONRenderer()))

    root = logging.getLogger()
    # Replace, not add to, handlers from an earlier call
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug("Logging configured", level=level_name, log_file=str(log_file or ""))


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)
