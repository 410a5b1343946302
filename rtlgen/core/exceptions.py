"""Custom exception hierarchy for rtlgen.

Every error that can reach a caller carries a stable machine-readable
``code``, a human message, an HTTP status used by the service surfaces,
and optional structured ``details`` plus the request's correlation id.
"""

from typing import Any


class RTLGenError(Exception):
    """Base exception for all rtlgen errors.

    All custom exceptions inherit from this class so callers can catch
    every rtlgen-specific error with a single except clause.
    """

    code = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Any = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.correlation_id = correlation_id

    def with_correlation_id(self, correlation_id: str | None) -> "RTLGenError":
        """Attach *correlation_id* unless one is already set."""
        if self.correlation_id is None:
            self.correlation_id = correlation_id
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``error`` object of a failure envelope."""
        payload: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.correlation_id is not None:
            payload["correlationId"] = self.correlation_id
        if self.details is not None:
            payload["details"] = self.details
        return payload


# =============================================================================
# Request / source errors
# =============================================================================

class ValidationPayloadError(RTLGenError):
    """Malformed request shape."""

    code = "validation_error"
    status_code = 400


class ParseError(RTLGenError):
    """Component source or generated test text fails to parse."""

    code = "parse_error"
    status_code = 422


class AmbiguousComponentError(RTLGenError):
    """The component name could not be determined from the source."""

    code = "ambiguous_component"
    status_code = 422


class RateLimitedError(RTLGenError):
    """The caller exceeded the gateway's request rate."""

    code = "rate_limited"
    status_code = 429


# =============================================================================
# Dependency errors
# =============================================================================

class UpstreamError(RTLGenError):
    """The generative backend reported an inline failure."""

    code = "upstream_error"
    status_code = 502


class ServiceUnavailableError(RTLGenError):
    """Circuit open, connection refused or 5xx from a dependency."""

    code = "service_unavailable"
    status_code = 503

    @classmethod
    def for_service(
        cls,
        service: str,
        correlation_id: str | None = None,
        details: Any = None,
    ) -> "ServiceUnavailableError":
        return cls(f"{service} is currently unavailable.", details, correlation_id)


class ServiceTimeoutError(RTLGenError):
    """Transport timeout or caller-triggered abort."""

    code = "service_timeout"
    status_code = 504

    @classmethod
    def for_service(
        cls,
        service: str,
        correlation_id: str | None = None,
        details: Any = None,
    ) -> "ServiceTimeoutError":
        return cls(f"{service} did not respond in time.", details, correlation_id)


class GenerationCancelledError(ServiceTimeoutError):
    """The caller aborted an in-flight generation. Never retried."""


class GenericUpstreamError(RTLGenError):
    """Unexpected non-2xx response from a dependency."""

    code = "generic_upstream_error"

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        details: Any = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message, details, correlation_id)
        self.status_code = status_code


class InternalServiceError(RTLGenError):
    """Unexpected failure inside a service."""

    code = "internal_error"
    status_code = 500


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigurationError(RTLGenError):
    """Configuration is invalid or missing."""

    code = "configuration_error"
    status_code = 500


_ERRORS_BY_CODE: dict[str, type[RTLGenError]] = {
    cls.code: cls
    for cls in (
        ValidationPayloadError,
        ParseError,
        AmbiguousComponentError,
        RateLimitedError,
        UpstreamError,
        ServiceUnavailableError,
        ServiceTimeoutError,
        InternalServiceError,
        ConfigurationError,
    )
}

# Errors that say something about the dependency's health rather than the request.
DEPENDENCY_FAILURES: tuple[type[RTLGenError], ...] = (
    UpstreamError,
    ServiceUnavailableError,
    ServiceTimeoutError,
    GenericUpstreamError,
    InternalServiceError,
)

TRANSIENT_FAILURES: tuple[type[RTLGenError], ...] = (
    ServiceUnavailableError,
    ServiceTimeoutError,
)


def error_from_payload(
    status_code: int,
    payload: Any,
    default_message: str,
    correlation_id: str | None = None,
) -> RTLGenError:
    """Rebuild a typed error from a failure envelope returned by a service.

    Unknown codes (or bodies that are not envelopes) become
    ``ServiceUnavailableError`` for a 5xx status and
    ``GenericUpstreamError`` carrying *status_code* otherwise.
    """
    error: dict[str, Any] = {}
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]

    message = error.get("message") or default_message
    details = error.get("details")
    correlation_id = error.get("correlationId") or correlation_id

    code = error.get("code", "")
    if code == GenericUpstreamError.code:
        return GenericUpstreamError(message, status_code, details, correlation_id)

    error_cls = _ERRORS_BY_CODE.get(code)
    if error_cls is not None:
        return error_cls(message, details, correlation_id)
    if status_code >= 500:
        return ServiceUnavailableError(message, details, correlation_id)
    return GenericUpstreamError(message, status_code, details, correlation_id)
