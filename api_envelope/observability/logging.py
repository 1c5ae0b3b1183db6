"""Structured logging configuration for applications using the envelope layer."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging import Logger

from flask import Flask


_DEFAULT_LOGGER_NAME = "api_envelope"

_SKIPPED_ATTRIBUTES = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "request_id",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class JsonFormatter(logging.Formatter):
    """A JSON formatter suited for structured logging."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - obvious
        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "request_id", None):
            payload["request_id"] = record.request_id  # type: ignore[attr-defined]

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key in _SKIPPED_ATTRIBUTES or key in payload or key.startswith("_"):
                continue
            payload[key] = value

        return json.dumps(
            payload,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            default=str,
        )


def _resolve_level(raw: object) -> int:
    if isinstance(raw, int):
        return raw
    level = logging.getLevelName(str(raw).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_structured_logging(app: Flask) -> Logger:
    """Configure structured logging for the given Flask application."""

    logger_name = app.config.get("LOGGER_NAME", _DEFAULT_LOGGER_NAME)
    logger = logging.getLogger(logger_name)
    logger.setLevel(_resolve_level(app.config.get("LOG_LEVEL", logging.INFO)))
    logger.handlers = []

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())
    logger.addHandler(stream_handler)

    logger.propagate = False
    app.logger = logger
    return logger
