"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the core library to ensure consistency and type safety.
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from core.tokens.context import RequestContext


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on the next call
                   (e.g., connection refused, timeouts, cancellation)
        AUTH: Upstream refused the configured credentials or returned a
              non-success status
        PERMANENT: Failures that won't succeed on retry
                   (e.g., configuration issues, malformed upstream payloads)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class Tokenizer(Protocol):
    """
    Protocol for token providers served by the broker.

    Implementations issue access tokens for one configured upstream backend
    (metadata service, OAuth2 endpoint, login API, secret store). The
    dispatcher and callers depend only on this protocol.
    """

    accepts_subnames: bool

    async def token(self, ctx: "RequestContext | None" = None) -> str:
        """
        Get an access token.

        Must be safe to await concurrently on the same instance and must honor
        cancellation and the deadline carried by ``ctx``.

        Args:
            ctx: Request context (deadline, cancellation, requested provider)

        Returns:
            Non-empty access token string

        Raises:
            BrokerError: If the token could not be issued
        """
        ...

    async def close(self) -> None:
        """Release any HTTP resources held by the tokenizer."""
        ...


__all__ = [
    "ErrorCategory",
    "Tokenizer",
]
