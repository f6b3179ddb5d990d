"""Tests for structlog setup."""

import json
import logging

import pytest
import structlog

from docker_dispatch.core.logging_config import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_file_output_is_json(tmp_path):
    log_file = tmp_path / "logs" / "dispatch.log"

    setup_logging(log_level="INFO", log_file=log_file)
    get_logger("tests").info("Docker backend installed", family="local")
    get_logger("tests").debug("Not written at INFO")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert len(lines) == 1
    assert lines[0]["event"] == "Docker backend installed"
    assert lines[0]["family"] == "local"
    assert lines[0]["level"] == "info"


def test_repeated_setup_replaces_handlers():
    setup_logging(log_level="WARNING")
    setup_logging(log_level="DEBUG")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.WARNING
