"""
Error classification and exception hierarchy.

Provides:
- BrokerError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    # Base classes
    BrokerError,
    # Startup / request errors
    ConfigurationError,
    ContextCancelledError,
    UnsupportedProviderError,
    # Upstream errors
    UpstreamError,
    UpstreamMalformedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
    # Classification utilities
    classify_http_status,
    is_transient_error,
    wrap_exception,
)
from core.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "BrokerError",
    "ConfigurationError",
    "UnsupportedProviderError",
    "UpstreamError",
    "UpstreamUnreachableError",
    "UpstreamRejectedError",
    "UpstreamMalformedError",
    "ContextCancelledError",
    # Classification utilities
    "classify_http_status",
    "is_transient_error",
    "wrap_exception",
]
