"""Tests covering structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys

from flask import Flask

from api_envelope.observability import JsonFormatter, configure_structured_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="api_envelope",
        level=logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg="%s on line %s in %s",
        args=("boom", 12, "todos.py"),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    payload = json.loads(JsonFormatter().format(_record(request_id="abc", status_code=500)))

    assert payload["message"] == "boom on line 12 in todos.py"
    assert payload["level"] == "ERROR"
    assert payload["logger"] == "api_envelope"
    assert payload["request_id"] == "abc"
    assert payload["status_code"] == 500
    assert "lineno" not in payload


def test_json_formatter_skips_empty_request_id_and_formats_exceptions():
    try:
        raise ValueError("bad value")
    except ValueError:
        record = _record(request_id=None)
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "request_id" not in payload
    assert "ValueError: bad value" in payload["exception"]


def test_json_formatter_serialises_unknown_objects():
    payload = json.loads(JsonFormatter().format(_record(env_files=("a", "b"), marker=object())))

    assert payload["env_files"] == ["a", "b"]
    assert payload["marker"].startswith("<object object")


def test_configure_structured_logging_replaces_handlers():
    app = Flask(__name__)
    app.config["LOGGER_NAME"] = "tests.observability"
    app.config["LOG_LEVEL"] = "warning"

    logger = configure_structured_logging(app)
    configure_structured_logging(app)

    assert app.logger is logger
    assert logger.level == logging.WARNING
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, JsonFormatter)
