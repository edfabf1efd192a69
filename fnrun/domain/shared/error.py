"""Error hierarchy for fnrun.

Error layers:
- FnRunError: Base class for all fnrun errors
- DomainError: Invocation-level failures a caller can act on (4xx responses)
- InfrastructureError: Startup and collaborator failures (503 responses)

Per-invocation errors are usually *returned* as values (hook results, ``send``
results, ``Out.error``) rather than raised. They are mapped to HTTP responses by
the global exception handler in app.py when they do escape.
"""


class FnRunError(Exception):
    """Base class for all fnrun errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (invocation-level - typically 4xx)
# =============================================================================


class DomainError(FnRunError):
    """Base class for invocation-level errors."""


class NotFoundError(DomainError):
    """Named output, function or interceptor not found."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class UnsupportedOutputError(DomainError):
    """Output component type is neither pub/sub nor binding."""


class EventFormatError(DomainError):
    """Structured event could not be parsed or serialized."""


# =============================================================================
# Infrastructure Errors (system-level failures - typically 503)
# =============================================================================


class InfrastructureError(FnRunError):
    """Base class for infrastructure/system errors."""


class ConfigurationError(InfrastructureError):
    """Descriptor or process configuration is invalid. Fatal at startup."""


class SidecarError(InfrastructureError):
    """Sidecar broker is unreachable or rejected a request."""


class DeliveryError(InfrastructureError):
    """Dispatching a broker-delivered event failed.

    Reported back to the broker so its own redelivery policy applies.
    """


# =============================================================================
# Errors reported as values
# =============================================================================

ErrorValue = Exception | str
"""An error returned (not raised) by a hook, a function or ``send``."""


def error_message(error: ErrorValue) -> str:
    """Human readable message for an error value."""
    if isinstance(error, Exception):
        return getattr(error, "message", None) or str(error) or type(error).__name__
    return error
