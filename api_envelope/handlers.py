"""Flask error handlers rendering raised exceptions as envelopes."""

from __future__ import annotations

from flask import Flask
from werkzeug.exceptions import HTTPException

from .errors import ResourceNotFound, ValidationFailed
from .responses import exception_message, get_formatter

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def register_error_handlers(app: Flask) -> None:
    """Register envelope error handlers on ``app``."""

    @app.errorhandler(ValidationFailed)
    def validation_failed_handler(error: ValidationFailed):
        return get_formatter().form_validation_error(error.errors, error.data)

    @app.errorhandler(ResourceNotFound)
    def resource_not_found_handler(error: ResourceNotFound):
        return get_formatter().not_found(error.message, error.status_text, error.data)

    @app.errorhandler(HTTPException)
    def http_error_handler(error: HTTPException):
        """Return JSON envelopes for Werkzeug HTTP exceptions."""

        return get_formatter().http_error(exception_message(error), error)

    @app.errorhandler(Exception)
    def generic_error_handler(error: Exception):
        """Return a JSON envelope for unexpected errors."""

        return get_formatter().server_error(INTERNAL_ERROR_MESSAGE, error)
