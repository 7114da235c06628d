"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import logging.handlers

import pytest

from goaltracker.config import BaseConfig
from goaltracker.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.setenv("GOALTRACKER_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("GOALTRACKER_DEV_MODE", raising=False)
    cfg = BaseConfig()
    cfg.LOG_TO_FILE = True
    return cfg


def _record(**overrides) -> logging.LogRecord:
    fields = dict(
        name="goaltracker.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg="Goal created",
        args=(),
        exc_info=None,
    )
    fields.update(overrides)
    return logging.LogRecord(**fields)


def test_json_formatter_includes_extra_fields():
    record = _record()
    record.goal_id = 7
    record.parent_id = None

    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "goaltracker.test"
    assert log_data["message"] == "Goal created"
    assert log_data["line"] == 42
    assert log_data["extra"] == {"goal_id": 7, "parent_id": None}
    assert "timestamp" in log_data


def test_json_formatter_with_exception():
    try:
        raise RuntimeError("rollup failed")
    except RuntimeError:
        import sys

        exc_info = sys.exc_info()

    log_data = json.loads(JSONFormatter().format(_record(level=logging.ERROR, exc_info=exc_info)))

    assert log_data["exception"]["type"] == "RuntimeError"
    assert "rollup failed" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"]


def test_setup_logging_writes_json_file(config, tmp_path):
    logger = setup_logging(config)

    assert logger.name == "goaltracker"
    assert len(logger.handlers) == 2

    get_logger("services.goals").info("Goal created", extra={"goal_id": 3})
    for handler in logger.handlers:
        handler.flush()

    log_file = tmp_path / "logs" / "goaltracker.log"
    lines = [json.loads(line) for line in log_file.read_text().splitlines() if line.strip()]
    assert lines[0]["message"] == "Logging initialized"
    assert lines[-1]["extra"] == {"goal_id": 3}


def test_setup_logging_twice_does_not_duplicate_handlers(config):
    setup_logging(config)
    logger = setup_logging(config)
    assert len(logger.handlers) == 2


def test_file_logging_can_be_disabled(config):
    config.LOG_TO_FILE = False
    logger = setup_logging(config)
    assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)


def test_get_logger_namespacing():
    assert get_logger("services.goals").name == "goaltracker.services.goals"
    assert get_logger("goaltracker.services.tasks").name == "goaltracker.services.tasks"


@pytest.mark.parametrize("dev_mode", [True, False])
def test_console_level_by_mode(config, dev_mode):
    config.DEV_MODE = dev_mode
    logger = setup_logging(config)

    console = next(
        handler
        for handler in logger.handlers
        if not isinstance(handler, logging.handlers.RotatingFileHandler)
    )
    assert console.level == (logging.INFO if dev_mode else logging.WARNING)
