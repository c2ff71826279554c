# tests/unit/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging
from collections.abc import Iterator

import pytest

from autobuild.core.logging import LOG_TAG, add_log_tag, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_add_log_tag_prefixes_once() -> None:
    event = add_log_tag(None, "info", {"event": "Running step 0: Build"})
    assert event["event"] == f"{LOG_TAG} Running step 0: Build"
    again = add_log_tag(None, "info", dict(event))
    assert again["event"] == event["event"]


def test_json_lines_carry_tag_and_context(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(json_output=True)

    get_logger("autobuild.test").info("Running step 2: Build", step="Build", index=2)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == f"{LOG_TAG} Running step 2: Build"
    assert record["step"] == "Build"
    assert record["index"] == 2
    assert record["level"] == "info"


def test_stdlib_loggers_share_format(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(json_output=True)

    logging.getLogger("some.library").warning("plain stdlib message")

    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["event"] == f"{LOG_TAG} plain stdlib message"


def test_console_output_is_tagged(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(json_output=False)

    get_logger("autobuild.test").info("Done!")

    assert f"{LOG_TAG} Done!" in capsys.readouterr().out


def test_level_filters_debug(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(json_output=True, level="INFO")

    get_logger("autobuild.test").debug("hidden")

    assert "hidden" not in capsys.readouterr().out
