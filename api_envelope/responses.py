"""Utilities for building uniform JSON API response envelopes.

Every response produced here shares one shape::

    {"statusCode": 404, "statusText": "not_found", "message": "...", ...}

followed, when supplied, by ``validationErrors``, ``data`` and ``exception``
in that order. Optional members are left out instead of being sent as
``null`` and the HTTP status of the response always equals ``statusCode``.
Validation failures always carry ``validationErrors``, even when ``null``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from flask import Flask, Response, current_app
from werkzeug.exceptions import HTTPException

from .middleware.logging import current_request_id
from .utils.config import StatusConfig

__all__ = [
    "ApiResponsesMixin",
    "Envelope",
    "HTTP_ERROR_STATUS_TEXT",
    "ResponseFormatter",
    "VALIDATION_FAILED_MESSAGE",
    "exception_location",
    "exception_message",
    "exception_status_code",
    "get_formatter",
]

VALIDATION_FAILED_MESSAGE = "Whoops. Validation failed."
HTTP_ERROR_STATUS_TEXT = "http_error"

_EXTENSION_KEY = "response_formatter"


@dataclass(frozen=True)
class Envelope:
    """A single response envelope; ``None`` marks an absent optional member.

    ``has_validation_errors`` forces ``validationErrors`` into the payload
    whatever its value.
    """

    status_code: int
    status_text: str
    message: str
    validation_errors: Any = None
    data: Any = None
    exception: Optional[str] = None
    has_validation_errors: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "statusCode": self.status_code,
            "statusText": self.status_text,
            "message": self.message,
        }
        if self.has_validation_errors or self.validation_errors is not None:
            payload["validationErrors"] = self.validation_errors
        if self.data is not None:
            payload["data"] = self.data
        if self.exception is not None:
            payload["exception"] = self.exception
        return payload


def exception_message(exc: BaseException) -> str:
    """Return the human readable message of ``exc``."""

    if isinstance(exc, HTTPException):
        return exc.description or exc.name
    return str(exc)


def exception_location(exc: BaseException) -> Tuple[str, int]:
    """Return ``(filename, line)`` of the frame that raised ``exc``."""

    tb = exc.__traceback__
    if tb is None:
        return "<unknown>", 0
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def exception_status_code(exc: BaseException) -> Optional[int]:
    """Return the HTTP status carried by ``exc``, if it carries one."""

    if isinstance(exc, HTTPException):
        code = exc.code
    else:
        code = getattr(exc, "status_code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


class ResponseFormatter:
    """Builds envelopes from the injected status configuration.

    ``build_*`` methods return the :class:`Envelope` only; the methods named
    after each response kind additionally log and return a Flask
    :class:`~flask.Response` and therefore need an application context.
    """

    def __init__(
        self,
        config: StatusConfig,
        logger: Optional[logging.Logger] = None,
        *,
        expose_exceptions: bool = True,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger("api_envelope")
        self.expose_exceptions = expose_exceptions

    def init_app(self, app: Flask) -> None:
        app.extensions[_EXTENSION_KEY] = self

    def _exception_field(self, exc: Optional[BaseException]) -> Optional[str]:
        if exc is None or not self.expose_exceptions:
            return None
        return exception_message(exc)

    def _log_exception(self, exc: Optional[BaseException], status_code: int) -> None:
        if exc is None:
            return
        filename, line = exception_location(exc)
        self.logger.error(
            "%s on line %s in %s",
            exception_message(exc),
            line,
            filename,
            extra={"request_id": current_request_id(), "status_code": status_code},
        )

    def _render(self, envelope: Envelope) -> Response:
        app = current_app
        body = app.json.dumps(envelope.to_dict(), sort_keys=False)
        return app.response_class(
            f"{body}\n", status=envelope.status_code, mimetype=app.json.mimetype
        )

    def _build(self, name: str, message: str, data: Any = None, status_text: Optional[str] = None) -> Envelope:
        return Envelope(
            status_code=self.config.code(name),
            status_text=status_text if status_text is not None else self.config.text(name),
            message=message,
            data=data,
        )

    # Envelope builders

    def build_server_error(self, message: str, exception: Optional[BaseException] = None) -> Envelope:
        return Envelope(
            status_code=self.config.code("server_error"),
            status_text=self.config.text("server_error"),
            message=message,
            exception=self._exception_field(exception),
        )

    def build_http_error(self, message: str, exception: BaseException) -> Envelope:
        if exception is None:
            raise TypeError("http_error() requires an exception carrying a status code")
        status_code = exception_status_code(exception)
        if status_code is None:
            status_code = self.config.code("server_error")
        return Envelope(
            status_code=status_code,
            status_text=HTTP_ERROR_STATUS_TEXT,
            message=message,
            exception=self._exception_field(exception),
        )

    def build_form_validation_error(self, errors: Any, data: Any = None) -> Envelope:
        return Envelope(
            status_code=self.config.code("validation_failed"),
            status_text=self.config.text("validation_failed"),
            message=VALIDATION_FAILED_MESSAGE,
            validation_errors=errors,
            data=data,
            has_validation_errors=True,
        )

    def build_not_found(self, message: str, status_text: str = "not_found", data: Any = None) -> Envelope:
        return self._build("not_found", message, data, status_text=status_text)

    def build_bad_request(self, message: str, status_text: str = "bad_request", data: Any = None) -> Envelope:
        return self._build("bad_request", message, data, status_text=status_text)

    def build_ok_response(self, message: str, data: Any = None) -> Envelope:
        return self._build("success", message, data)

    def build_created_response(self, message: str, data: Any = None) -> Envelope:
        return self._build("created", message, data)

    def build_forbidden_request(self, message: str, data: Any = None) -> Envelope:
        return self._build("forbidden", message, data)

    # Responses

    def server_error(self, message: str, exception: Optional[BaseException] = None) -> Response:
        """Respond with the configured server error; logs ``exception`` when given."""

        envelope = self.build_server_error(message, exception)
        self._log_exception(exception, envelope.status_code)
        return self._render(envelope)

    def http_error(self, message: str, exception: BaseException) -> Response:
        """Respond with the status code carried by ``exception``."""

        envelope = self.build_http_error(message, exception)
        self._log_exception(exception, envelope.status_code)
        return self._render(envelope)

    def form_validation_error(self, errors: Any, data: Any = None) -> Response:
        return self._render(self.build_form_validation_error(errors, data))

    def not_found(self, message: str, status_text: str = "not_found", data: Any = None) -> Response:
        return self._render(self.build_not_found(message, status_text, data))

    def bad_request(self, message: str, status_text: str = "bad_request", data: Any = None) -> Response:
        return self._render(self.build_bad_request(message, status_text, data))

    def ok_response(self, message: str, data: Any = None) -> Response:
        return self._render(self.build_ok_response(message, data))

    def created_response(self, message: str, data: Any = None) -> Response:
        return self._render(self.build_created_response(message, data))

    def forbidden_request(self, message: str, data: Any = None) -> Response:
        return self._render(self.build_forbidden_request(message, data))


def get_formatter() -> ResponseFormatter:
    """Return the formatter registered on the current application."""

    formatter = current_app.extensions.get(_EXTENSION_KEY)
    if formatter is None:
        raise RuntimeError("No ResponseFormatter registered; call ResponseFormatter.init_app(app)")
    return formatter


class ApiResponsesMixin:
    """Envelope helpers for class based views (``flask.views.MethodView``)."""

    def server_error(self, message: str, exception: Optional[BaseException] = None) -> Response:
        return get_formatter().server_error(message, exception)

    def http_error(self, message: str, exception: BaseException) -> Response:
        return get_formatter().http_error(message, exception)

    def form_validation_error(self, errors: Any, data: Any = None) -> Response:
        return get_formatter().form_validation_error(errors, data)

    def not_found(self, message: str, status_text: str = "not_found", data: Any = None) -> Response:
        return get_formatter().not_found(message, status_text, data)

    def bad_request(self, message: str, status_text: str = "bad_request", data: Any = None) -> Response:
        return get_formatter().bad_request(message, status_text, data)

    def ok_response(self, message: str, data: Any = None) -> Response:
        return get_formatter().ok_response(message, data)

    def created_response(self, message: str, data: Any = None) -> Response:
        return get_formatter().created_response(message, data)

    def forbidden_request(self, message: str, data: Any = None) -> Response:
        return get_formatter().forbidden_request(message, data)
