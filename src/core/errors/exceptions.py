"""
Typed broker exceptions.

Every exception carries an ErrorCategory so the HTTP layer and the logs can
tell a bad descriptor apart from an upstream that is briefly down. The
message is what callers see; the wrapped cause is kept for logs only.
"""

from core.types import ErrorCategory


def classify_http_status(status_code: int) -> ErrorCategory:
    """Map an upstream HTTP status onto an error category."""
    if status_code < 400:
        return ErrorCategory.UNKNOWN
    if status_code in (401, 403):
        return ErrorCategory.AUTH
    if status_code == 429 or status_code >= 500:
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PERMANENT


class BrokerError(Exception):
    """
    Root of the broker exception tree.

    Attributes:
        message: Text returned to API callers, also the str() value
        category: How the failure should be treated
        cause: Wrapped lower-level exception, if any
        context: Extra key/values for structured logs
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, cause: Exception | None = None, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = dict(context) if context else {}

    @property
    def is_retryable(self) -> bool:
        return self.category not in (ErrorCategory.PERMANENT, ErrorCategory.AUTH)

    def __str__(self) -> str:
        return self.message


class ConfigurationError(BrokerError):
    """Bad, duplicate or incomplete provider descriptor or process config."""

    category = ErrorCategory.PERMANENT


class UnsupportedProviderError(BrokerError):
    """Requested provider name is not registered."""

    category = ErrorCategory.PERMANENT

    def __init__(self, provider: str):
        super().__init__(f"unsupported token provider: {provider}", context={"provider": provider})
        self.provider = provider


class ContextCancelledError(BrokerError):
    """Caller cancelled the request or its deadline elapsed."""

    category = ErrorCategory.TRANSIENT


# Upstream failures are per call and never cached.


class UpstreamError(BrokerError):
    """Failure talking to an upstream identity backend."""


class UpstreamUnreachableError(UpstreamError):
    """DNS failure, refused connection or unusable URL."""

    category = ErrorCategory.TRANSIENT


class UpstreamRejectedError(UpstreamError):
    """
    Upstream answered with a non-success status.

    Without a status the rejection is treated as an auth failure; with one,
    the category follows the status (a 503 is worth retrying, a 401 is not).
    """

    category = ErrorCategory.AUTH

    def __init__(
        self,
        message: str,
        status: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause=cause, context=context)
        self.status = status
        if status is not None:
            self.context.setdefault("http_status", status)
            self.category = classify_http_status(status)


class UpstreamMalformedError(UpstreamError):
    """Upstream answered successfully but the payload could not be used."""

    category = ErrorCategory.PERMANENT


def is_transient_error(exc: Exception) -> bool:
    """True if repeating the call may succeed without a config change."""
    if isinstance(exc, BrokerError):
        return exc.category is ErrorCategory.TRANSIENT
    return isinstance(exc, (ConnectionError, TimeoutError))


def wrap_exception(
    exc: Exception,
    default_class: type[BrokerError] = BrokerError,
    context: dict | None = None,
) -> BrokerError:
    """Turn an arbitrary exception into a BrokerError; typed ones pass through."""
    if isinstance(exc, BrokerError):
        exc.context.update(context or {})
        return exc
    if isinstance(exc, TimeoutError):
        return ContextCancelledError("context deadline exceeded", cause=exc, context=context)
    if isinstance(exc, ConnectionError):
        return UpstreamUnreachableError(str(exc), cause=exc, context=context)
    return default_class(str(exc), cause=exc, context=context)


__all__ = [
    "BrokerError",
    "ConfigurationError",
    "UnsupportedProviderError",
    "UpstreamError",
    "UpstreamUnreachableError",
    "UpstreamRejectedError",
    "UpstreamMalformedError",
    "ContextCancelledError",
    "classify_http_status",
    "is_transient_error",
    "wrap_exception",
]
