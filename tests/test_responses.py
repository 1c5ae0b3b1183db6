"""Tests for the envelope formatter."""

from __future__ import annotations

import json
import logging
import os

import pytest
from flask import Flask
from werkzeug.exceptions import HTTPException, ImATeapot, NotFound

from api_envelope.responses import (
    HTTP_ERROR_STATUS_TEXT,
    VALIDATION_FAILED_MESSAGE,
    Envelope,
    ResponseFormatter,
    exception_location,
    exception_message,
    exception_status_code,
)
from api_envelope.utils.config import StatusConfig


class _CapturingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class ConflictError(Exception):
    status_code = 409


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:  # noqa: BLE001 - test helper
        return caught


def _body(response):
    return json.loads(response.get_data(as_text=True))


@pytest.fixture
def app():
    app = Flask(__name__)
    with app.app_context():
        yield app


@pytest.fixture
def handler():
    return _CapturingHandler()


@pytest.fixture
def logger(handler):
    logger = logging.getLogger("tests.responses")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


@pytest.fixture
def formatter(logger):
    return ResponseFormatter(StatusConfig(), logger)


def test_ok_response_without_data(app, formatter):
    response = formatter.ok_response("ok")

    assert response.status_code == 200
    assert response.mimetype == "application/json"
    assert _body(response) == {"statusCode": 200, "statusText": "success", "message": "ok"}


def test_payload_key_order_survives_sorted_json_provider(app, formatter):
    app.json.sort_keys = True

    response = formatter.server_error("failed", _raised(RuntimeError("boom")))

    assert list(_body(response)) == ["statusCode", "statusText", "message", "exception"]


def test_validation_error_key_order(app, formatter):
    response = formatter.form_validation_error({"title": ["required"]}, {"title": ""})

    assert list(_body(response)) == [
        "statusCode",
        "statusText",
        "message",
        "validationErrors",
        "data",
    ]


def test_form_validation_error(app, formatter):
    response = formatter.form_validation_error({"field": ["required"]})

    assert response.status_code == 422
    assert _body(response) == {
        "statusCode": 422,
        "statusText": "validation_failed",
        "message": VALIDATION_FAILED_MESSAGE,
        "validationErrors": {"field": ["required"]},
    }


def test_form_validation_error_always_carries_validation_errors(app, formatter):
    response = formatter.form_validation_error(None)
    envelope = formatter.build_form_validation_error(None, {"id": 2})

    assert response.status_code == 422
    assert _body(response) == {
        "statusCode": 422,
        "statusText": "validation_failed",
        "message": VALIDATION_FAILED_MESSAGE,
        "validationErrors": None,
    }
    assert list(envelope.to_dict()) == [
        "statusCode",
        "statusText",
        "message",
        "validationErrors",
        "data",
    ]


def test_not_found_default_and_custom_status_text(app, formatter):
    default = formatter.not_found("missing")
    custom = formatter.not_found("missing", "custom_text")

    assert default.status_code == 404
    assert _body(default)["statusText"] == "not_found"
    assert _body(custom)["statusText"] == "custom_text"
    assert "data" not in _body(custom)


def test_bad_request_with_data(app, formatter):
    response = formatter.bad_request("nope", "invalid_filter", {"filter": "done"})

    assert response.status_code == 400
    assert _body(response) == {
        "statusCode": 400,
        "statusText": "invalid_filter",
        "message": "nope",
        "data": {"filter": "done"},
    }


@pytest.mark.parametrize(
    ("method", "status_code", "status_text"),
    [
        ("ok_response", 200, "success"),
        ("created_response", 201, "created"),
        ("forbidden_request", 403, "forbidden"),
        ("not_found", 404, "not_found"),
        ("bad_request", 400, "bad_request"),
    ],
)
def test_status_matches_payload_and_data_is_optional(app, formatter, method, status_code, status_text):
    operation = getattr(formatter, method)

    without_data = operation("message")
    with_data = operation("message", data={"id": 1})

    assert without_data.status_code == _body(without_data)["statusCode"] == status_code
    assert _body(without_data)["statusText"] == status_text
    assert "data" not in _body(without_data)
    assert _body(with_data)["data"] == {"id": 1}


def test_falsy_data_is_emitted(app, formatter):
    assert _body(formatter.ok_response("empty", []))["data"] == []
    assert _body(formatter.created_response("zero", 0))["data"] == 0


def test_server_error_logs_exception_once(app, formatter, handler):
    error = _raised(ValueError("database unreachable"))

    response = formatter.server_error("Could not load todos", error)

    assert response.status_code == 500
    assert _body(response) == {
        "statusCode": 500,
        "statusText": "server_error",
        "message": "Could not load todos",
        "exception": "database unreachable",
    }
    assert len(handler.records) == 1
    record = handler.records[0]
    assert record.levelno == logging.ERROR
    message = record.getMessage()
    assert message.startswith("database unreachable on line ")
    assert f"on line {error.__traceback__.tb_lineno} " in message
    assert os.path.basename(__file__) in message
    assert record.status_code == 500


def test_server_error_without_exception_does_not_log(app, formatter, handler):
    response = formatter.server_error("Something went wrong")

    assert handler.records == []
    assert "exception" not in _body(response)


def test_http_error_uses_exception_status(app, formatter, handler):
    error = _raised(ImATeapot("short and stout"))

    response = formatter.http_error("bad", error)

    assert response.status_code == 418
    assert _body(response) == {
        "statusCode": 418,
        "statusText": HTTP_ERROR_STATUS_TEXT,
        "message": "bad",
        "exception": "short and stout",
    }
    assert len(handler.records) == 1


def test_http_error_with_unraised_exception_logs_unknown_location(app, formatter, handler):
    formatter.http_error("gone", NotFound("Todo 7 does not exist"))

    assert handler.records[0].getMessage() == "Todo 7 does not exist on line 0 in <unknown>"


def test_http_error_requires_exception(app, formatter, handler):
    with pytest.raises(TypeError):
        formatter.http_error("bad", None)  # type: ignore[arg-type]
    assert handler.records == []


def test_http_error_reads_status_code_attribute(app, formatter):
    response = formatter.http_error("conflict", ConflictError("already exists"))

    assert response.status_code == 409
    assert _body(response)["exception"] == "already exists"


def test_http_error_without_status_falls_back_to_server_error(app, formatter):
    response = formatter.http_error("odd", HTTPException("no code"))

    assert response.status_code == 500
    assert _body(response)["statusText"] == HTTP_ERROR_STATUS_TEXT


def test_hidden_exception_details_are_still_logged(app, logger, handler):
    formatter = ResponseFormatter(StatusConfig(), logger, expose_exceptions=False)

    response = formatter.server_error("failed", _raised(KeyError("secret")))

    assert "exception" not in _body(response)
    assert len(handler.records) == 1


def test_configured_codes_are_used(app, logger):
    config = StatusConfig.from_mapping(
        {"status_codes.success": 202, "status_texts.success": "accepted"}
    )
    formatter = ResponseFormatter(config, logger)

    response = formatter.ok_response("queued")

    assert response.status_code == 202
    assert _body(response)["statusText"] == "accepted"


def test_builders_do_not_need_application_context():
    formatter = ResponseFormatter(StatusConfig())

    envelope = formatter.build_created_response("created", {"id": 3})

    assert envelope == Envelope(201, "created", "created", data={"id": 3})
    assert envelope.to_dict() == {
        "statusCode": 201,
        "statusText": "created",
        "message": "created",
        "data": {"id": 3},
    }


def test_exception_helpers():
    error = _raised(NotFound())
    filename, line = exception_location(error)

    assert exception_message(error) == NotFound.description
    assert exception_status_code(error) == 404
    assert filename == __file__ or os.path.samefile(filename, __file__)
    assert line > 0
    assert exception_status_code(ValueError("plain")) is None
    assert exception_location(ValueError("never raised")) == ("<unknown>", 0)
