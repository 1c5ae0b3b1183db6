"""Exception types used by the response layer and the controllers calling it."""

from __future__ import annotations

from typing import Any


class ApiEnvelopeError(Exception):
    """Base class for errors raised by ``api_envelope``."""


class ConfigurationError(ApiEnvelopeError):
    """Raised when the status code/text configuration is missing or invalid."""


class ValidationFailed(ApiEnvelopeError):
    """Raised by a controller when submitted input does not validate.

    The registered error handler renders it as a ``validation_failed``
    envelope carrying ``errors`` and, when given, ``data``.
    """

    def __init__(self, errors: Any, data: Any = None) -> None:
        super().__init__("Validation failed")
        self.errors = errors
        self.data = data


class ResourceNotFound(ApiEnvelopeError):
    """Raised by a controller when the requested resource does not exist."""

    def __init__(
        self,
        message: str,
        status_text: str = "not_found",
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_text = status_text
        self.data = data
