"""Base tokenizer interface and the cache/refresh unit shared by adapters."""

import asyncio
import logging
from abc import ABC, abstractmethod

import aiohttp

from core.errors.exceptions import (
    BrokerError,
    ConfigurationError,
    UpstreamError,
    wrap_exception,
)
from core.tokens.context import RequestContext, run_in_context
from core.tokens.models import CachedToken, IssuedToken

logger = logging.getLogger(__name__)

# Upper bound for a single upstream call unless the registry says otherwise
DEFAULT_TIMEOUT_SECONDS = 30


def require_fields(
    provider_type: str, provider_name: str, fields: list[tuple[str, str | None]]
) -> None:
    """
    Fail on the first empty descriptor attribute.

    Args:
        provider_type: Provider type for the message
        provider_name: Provider name for the message
        fields: (attribute name, value) pairs in reporting order

    Raises:
        ConfigurationError: Naming the type, provider and missing attribute
    """
    for attribute, value in fields:
        if not value:
            raise ConfigurationError(
                f"{provider_type} token provider {provider_name} "
                f'missing required "{attribute}" attribute',
                context={"provider": provider_name, "provider_type": provider_type},
            )


def status_line(response: aiohttp.ClientResponse) -> str:
    """HTTP status line as reported to callers, e.g. ``500 Internal Server Error``."""
    if response.reason:
        return f"{response.status} {response.reason}"
    return str(response.status)


class BaseTokenizer(ABC):
    """
    Abstract base class for token providers.

    One instance serves one configured provider. Implementations speak one
    upstream protocol and translate its results and failures into a token
    string or a BrokerError.
    """

    provider_type: str = ""
    accepts_subnames: bool = False

    def __init__(self, provider_name: str, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """
        Initialize tokenizer.

        Args:
            provider_name: Unique identifier for this provider instance
            timeout: Upper bound in seconds for each upstream call
        """
        self.provider_name = provider_name
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.timeout)

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            self._session = self._new_session()
        return self._session

    @abstractmethod
    async def token(self, ctx: RequestContext | None = None) -> str:
        """
        Get an access token.

        Args:
            ctx: Request context (deadline, cancellation, requested provider)

        Returns:
            Non-empty access token string

        Raises:
            BrokerError: If the token could not be issued
        """
        pass

    async def close(self) -> None:
        """Close HTTP client session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_name={self.provider_name!r})"


class CachingTokenizer(BaseTokenizer):
    """
    Tokenizer that caches the upstream token until it expires.

    Cache states: empty -> fresh -> stale -> (refreshing) -> fresh | error.

    Fresh records are served without taking the lock. A stale or missing
    record is refreshed under the instance lock, and freshness is checked
    again once the lock is held, so concurrent callers collapse into a single
    upstream call. A failed fetch leaves the previous record untouched and
    the error goes to that caller only; the next caller tries again.

    Subclasses implement ``fetch_token``. Tokenizers serving several
    upstream subjects override ``cache_key`` to keep one record per subject
    under the same lock.
    """

    def __init__(
        self,
        provider_name: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        short_expiration: float | None = None,
    ):
        """
        Initialize caching tokenizer.

        Args:
            provider_name: Unique identifier for this provider instance
            timeout: Upper bound in seconds for each upstream call
            short_expiration: Seconds that replace the upstream-declared lifetime
        """
        super().__init__(provider_name, timeout)
        self.short_expiration = short_expiration or None
        self._lock = asyncio.Lock()
        self._tokens: dict[str, CachedToken] = {}

    def cache_key(self, ctx: RequestContext | None) -> str:
        """Key of the cache record serving ``ctx``."""
        return ""

    def cached_token(self, key: str = "") -> CachedToken | None:
        """Current cache record, fresh or not."""
        return self._tokens.get(key)

    @abstractmethod
    async def fetch_token(self, ctx: RequestContext | None) -> IssuedToken:
        """
        Perform one upstream call.

        Args:
            ctx: Request context for the call

        Returns:
            IssuedToken with the upstream-declared lifetime

        Raises:
            BrokerError: If the upstream call fails
        """
        pass

    async def token(self, ctx: RequestContext | None = None) -> str:
        key = self.cache_key(ctx)

        cached = self._tokens.get(key)
        if cached is not None and cached.is_fresh():
            logger.debug(
                f"Using cached token for '{self.provider_name}'",
                extra={
                    "provider": self.provider_name,
                    "remaining_seconds": cached.remaining_lifetime.total_seconds(),
                    "cache_hit": True,
                },
            )
            return cached.value

        return await run_in_context(ctx, self._refresh(key, ctx))

    async def _refresh(self, key: str, ctx: RequestContext | None) -> str:
        async with self._lock:
            cached = self._tokens.get(key)
            if cached is not None and cached.is_fresh():
                logger.debug(
                    f"Token was refreshed by another caller for '{self.provider_name}'"
                )
                return cached.value

            try:
                issued = await self.fetch_token(ctx)
            except BrokerError as e:
                logger.warning(
                    f"Failed to get token for '{self.provider_name}': {e}",
                    extra={
                        "provider": self.provider_name,
                        "provider_type": self.provider_type,
                        "error_category": e.category.value,
                    },
                )
                raise
            except Exception as e:
                logger.error(
                    f"Unexpected error getting token for '{self.provider_name}': {e}",
                    exc_info=True,
                )
                raise wrap_exception(e, UpstreamError) from e

            record = CachedToken.from_issued(issued, self.short_expiration)
            self._tokens[key] = record

            logger.info(
                f"Token for '{self.provider_name}' valid until "
                f"{record.expires_at.isoformat()}",
                extra={
                    "provider": self.provider_name,
                    "provider_type": self.provider_type,
                    "lifetime_seconds": record.remaining_lifetime.total_seconds(),
                },
            )
            return record.value


__all__ = [
    "BaseTokenizer",
    "CachingTokenizer",
    "DEFAULT_TIMEOUT_SECONDS",
    "require_fields",
    "status_line",
]
