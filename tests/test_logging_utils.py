"""Tests for logging setup and formatters."""

import json
import logging
import sys

import pytest

from prompt_enhancer.logging_utils import ConsoleFormatter, JsonLogFormatter, configure_logging


def _record(message="Saved prompt", data=None, exc_info=None):
    record = logging.LogRecord(
        name="prompt_enhancer.storage",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=exc_info,
    )
    if data is not None:
        record.data = data
    return record


class TestJsonLogFormatter:
    def test_single_line_entry_with_data(self):
        line = JsonLogFormatter().format(_record(data={"prompt_id": "p-1"}))
        entry = json.loads(line)
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "prompt_enhancer.storage"
        assert entry["message"] == "Saved prompt"
        assert entry["data"] == {"prompt_id": "p-1"}
        assert "\n" not in line

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            line = JsonLogFormatter().format(_record(exc_info=sys.exc_info()))
        assert "RuntimeError: boom" in json.loads(line)["exception"]


class TestConsoleFormatter:
    def test_appends_data(self):
        text = ConsoleFormatter().format(_record(data={"reason": "timeout"}))
        assert "| WARNING  |" in text
        assert text.endswith("| {'reason': 'timeout'}")


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_installs_one_handler(restore_root_logger):
    configure_logging("debug", json_format=True)
    configure_logging("debug", json_format=True)

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonLogFormatter)
    assert logging.getLogger("prompt_enhancer").level == logging.DEBUG
