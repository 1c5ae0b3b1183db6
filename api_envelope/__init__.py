"""Uniform JSON response envelopes for Flask APIs."""

from .errors import (  # noqa: F401
    ApiEnvelopeError,
    ConfigurationError,
    ResourceNotFound,
    ValidationFailed,
)
from .responses import (  # noqa: F401
    ApiResponsesMixin,
    Envelope,
    ResponseFormatter,
    get_formatter,
)
from .utils.config import StatusConfig  # noqa: F401

__all__ = [
    "ApiEnvelopeError",
    "ApiResponsesMixin",
    "ConfigurationError",
    "Envelope",
    "ResourceNotFound",
    "ResponseFormatter",
    "StatusConfig",
    "ValidationFailed",
    "get_formatter",
]
