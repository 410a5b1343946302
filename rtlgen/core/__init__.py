"""Core utilities: configuration, logging and the error taxonomy."""

from .config import Settings
from .exceptions import (
    AmbiguousComponentError,
    ConfigurationError,
    GenerationCancelledError,
    GenericUpstreamError,
    InternalServiceError,
    ParseError,
    RateLimitedError,
    RTLGenError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    UpstreamError,
    ValidationPayloadError,
    error_from_payload,
)
from .logging_config import StructuredFormatter, configure_logging
from .rate_limiter import ClientRateLimiters, RateLimiter

__all__ = [
    # Configuration
    "Settings",
    # Logging
    "StructuredFormatter",
    "configure_logging",
    # Rate limiting
    "ClientRateLimiters",
    "RateLimiter",
    # Exceptions
    "RTLGenError",
    "ValidationPayloadError",
    "ParseError",
    "AmbiguousComponentError",
    "RateLimitedError",
    "UpstreamError",
    "ServiceUnavailableError",
    "ServiceTimeoutError",
    "GenerationCancelledError",
    "GenericUpstreamError",
    "InternalServiceError",
    "ConfigurationError",
    "error_from_payload",
]
