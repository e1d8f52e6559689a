"""Tests for logging setup."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest

from atlas_provider.main import HANDLER_NAME, JsonFormatter, setup_logging


@pytest.fixture
def root_logger() -> Generator[logging.Logger, None, None]:
    logger = logging.getLogger()
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler.get_name() == HANDLER_NAME:
            logger.removeHandler(handler)
    logger.setLevel(level)


class TestJsonFormatter:
    def test_includes_extra_fields(self) -> None:
        record = logging.LogRecord(
            "atlas_provider.provider", logging.INFO, __file__, 1, "Applied %s", ("x",), None
        )
        record.address = "Project.analytics"

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "Applied x"
        assert data["level"] == "INFO"
        assert data["logger"] == "atlas_provider.provider"
        assert data["address"] == "Project.analytics"
        assert data["timestamp"].endswith("Z")
        assert "args" not in data


class TestSetupLogging:
    def test_replaces_only_its_own_handler(self, root_logger: logging.Logger) -> None:
        other = logging.NullHandler()
        root_logger.addHandler(other)
        try:
            setup_logging()
            setup_logging(json_output=True, level=logging.DEBUG)

            named = [h for h in root_logger.handlers if h.get_name() == HANDLER_NAME]
            assert len(named) == 1
            assert isinstance(named[0].formatter, JsonFormatter)
            assert other in root_logger.handlers
            assert root_logger.level == logging.DEBUG
        finally:
            root_logger.removeHandler(other)
