"""Rancher-style login provider."""

import json
import logging

import aiohttp

from core.errors.exceptions import (
    ContextCancelledError,
    UpstreamMalformedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from core.security.ssl_utils import build_ssl_context
from core.tokens.base import (
    DEFAULT_TIMEOUT_SECONDS,
    CachingTokenizer,
    require_fields,
    status_line,
)
from core.tokens.context import DEADLINE_EXCEEDED, RequestContext
from core.tokens.models import DEFAULT_TOKEN_LIFETIME_SECONDS, IssuedToken

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "proprietary-login"


class RancherTokenizer(CachingTokenizer):
    """
    Login-API provider (Rancher ``?action=login`` style).

    Posts the configured username and password as JSON and expects
    ``201 Created`` with a JSON body carrying ``token``. Any other status is
    reported by status line only; upstream bodies (often HTML error pages)
    are never echoed to callers.

    An optional PEM ``root_ca`` is trusted in addition to the system store,
    and an optional ``short_expiration`` replaces the token lifetime reported
    by the login API.
    """

    provider_type = PROVIDER_TYPE

    def __init__(
        self,
        provider_name: str,
        username: str,
        password: str,
        url: str,
        root_ca: str | None = None,
        short_expiration: float | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize login provider.

        Args:
            provider_name: Unique identifier for this provider
            username: Login user
            password: Login password
            url: Login endpoint URL
            root_ca: Optional PEM certificate(s) to trust for the endpoint
            short_expiration: Optional seconds that replace the upstream lifetime
            timeout: Upper bound in seconds for each login request

        Raises:
            ConfigurationError: If a required attribute is missing or rootCA is invalid
        """
        require_fields(
            self.provider_type,
            provider_name,
            [("username", username), ("password", password), ("url", url)],
        )
        super().__init__(provider_name, timeout, short_expiration=short_expiration)

        self.username = username
        self.password = password
        self.url = url
        self._ssl_context = build_ssl_context(root_ca)

        logger.debug(
            f"Initialized login provider '{provider_name}'",
            extra={"provider": provider_name, "url": url},
        )

    def _new_session(self) -> aiohttp.ClientSession:
        if self._ssl_context is None:
            return aiohttp.ClientSession()
        return aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=self._ssl_context))

    async def fetch_token(self, ctx: RequestContext | None) -> IssuedToken:
        session = await self._ensure_session()

        login = {
            "responseType": "json",
            "username": self.username,
            "password": self.password,
        }

        try:
            async with session.post(
                self.url,
                json=login,
                timeout=self._client_timeout(),
            ) as response:
                if response.status != 201:
                    raise UpstreamRejectedError(
                        f"error getting token: {status_line(response)}",
                        status=response.status,
                    )
                body = await response.read()
        except TimeoutError as e:
            raise ContextCancelledError(
                f"error making request: {DEADLINE_EXCEEDED}", cause=e
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise UpstreamUnreachableError(f"error making request: {e}", cause=e) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise UpstreamMalformedError(str(e), cause=e) from e

        if not isinstance(payload, dict) or not payload.get("token"):
            raise UpstreamMalformedError(
                "error decoding token response: response did not include a token"
            )

        return IssuedToken(value=str(payload["token"]), lifetime_seconds=_lifetime(payload))


def _lifetime(payload: dict) -> float:
    # Rancher reports ttl in milliseconds; 0 means the token does not expire
    try:
        ttl_ms = float(payload.get("ttl") or 0)
    except (TypeError, ValueError):
        ttl_ms = 0
    if ttl_ms > 0:
        return ttl_ms / 1000
    return DEFAULT_TOKEN_LIFETIME_SECONDS


__all__ = ["RancherTokenizer"]
