from __future__ import annotations

import json
import logging
import sys

import pytest

from progress_engine.core.logging import (
    _ContainerFormatter,
    _JsonFormatter,
    setup_logging,
)


def _record(level: int = logging.INFO, msg: str = "hello %s", args=("world",)):
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="engine.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test.logger"
    assert parsed["message"] == "hello world"
    assert "timestamp" in parsed


def test_json_formatter_lifts_context_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.enrollment_id = "e-1"  # type: ignore[attr-defined]
    record.course_id = "c-1"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "abc-123"
    assert parsed["enrollment_id"] == "e-1"
    assert parsed["course_id"] == "c-1"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_skips_placeholder_request_id() -> None:
    record = _record()
    record.request_id = "-"  # type: ignore[attr-defined]
    assert "request_id" not in json.loads(_JsonFormatter().format(record))


def test_json_formatter_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(level=logging.ERROR, msg="failed", args=())
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)
    assert "ValueError: boom" in json.loads(output)["exception"]


def test_container_formatter_adds_location_for_warnings() -> None:
    formatter = _ContainerFormatter()
    assert "[engine.py:42]" in formatter.format(_record(level=logging.WARNING))
    assert "[engine.py:42]" not in formatter.format(_record(level=logging.INFO))


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_json_handler(restore_root_logger) -> None:
    setup_logging("debug", json_format=True)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_unknown_level_falls_back_to_info(restore_root_logger) -> None:
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO
