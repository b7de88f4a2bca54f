"""Microsoft-style OAuth2 client credentials provider."""

import json
import logging

import aiohttp

from core.errors.exceptions import (
    ContextCancelledError,
    UpstreamMalformedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from core.tokens.base import (
    DEFAULT_TIMEOUT_SECONDS,
    CachingTokenizer,
    require_fields,
    status_line,
)
from core.tokens.context import DEADLINE_EXCEEDED, RequestContext
from core.tokens.models import DEFAULT_TOKEN_LIFETIME_SECONDS, IssuedToken

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "oauth2-client-credentials"


def _error_description(body: bytes) -> str | None:
    """Pull ``error_description`` out of an OAuth2 error body, if it has one."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error_description"):
        return str(payload["error_description"])
    return None


def _expires_in(payload: dict) -> float:
    # Azure AD v1 endpoints send expires_in as a string ("3599")
    try:
        value = float(payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS))
    except (TypeError, ValueError):
        return DEFAULT_TOKEN_LIFETIME_SECONDS
    return value if value > 0 else DEFAULT_TOKEN_LIFETIME_SECONDS


class MicrosoftTokenizer(CachingTokenizer):
    """
    OAuth2 client credentials provider (Azure AD v1 style).

    Posts ``client_id``, ``client_secret`` and ``resource`` as a form to the
    configured login endpoint and caches the returned access token for the
    ``expires_in`` the endpoint reports.
    """

    provider_type = PROVIDER_TYPE

    def __init__(
        self,
        provider_name: str,
        client_id: str,
        client_secret: str,
        resource: str,
        login_endpoint: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize OAuth2 client credentials provider.

        Args:
            provider_name: Unique identifier for this provider
            client_id: Application (client) ID
            client_secret: Client secret
            resource: Resource the token is requested for
            login_endpoint: Token endpoint URL
            timeout: Upper bound in seconds for each token request

        Raises:
            ConfigurationError: If a required attribute is missing
        """
        require_fields(
            self.provider_type,
            provider_name,
            [
                ("clientId", client_id),
                ("clientSecret", client_secret),
                ("resource", resource),
                ("loginEndpoint", login_endpoint),
            ],
        )
        super().__init__(provider_name, timeout)

        self.client_id = client_id
        self.client_secret = client_secret
        self.resource = resource
        self.login_endpoint = login_endpoint

        # Don't log the secret
        logger.debug(
            f"Initialized OAuth2 provider '{provider_name}'",
            extra={"provider": provider_name, "url": login_endpoint},
        )

    async def fetch_token(self, ctx: RequestContext | None) -> IssuedToken:
        session = await self._ensure_session()

        request_data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "resource": self.resource,
        }

        try:
            async with session.post(
                self.login_endpoint,
                data=request_data,
                timeout=self._client_timeout(),
            ) as response:
                body = await response.read()
                status = status_line(response)
                ok = 200 <= response.status < 300
                http_status = response.status
        except TimeoutError as e:
            raise ContextCancelledError(
                f"microsoft: error making request: {DEADLINE_EXCEEDED}", cause=e
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise UpstreamUnreachableError(
                f"microsoft: error making request: {e}", cause=e
            ) from e

        if not ok:
            description = _error_description(body)
            raise UpstreamRejectedError(
                f"microsoft: error getting token: {description or status}",
                status=http_status,
            )

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise UpstreamMalformedError(
                f"microsoft: error unmarshaling body: {e}", cause=e
            ) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            description = _error_description(body)
            raise UpstreamMalformedError(
                "microsoft: error getting token: "
                f"{description or 'response did not include an access token'}"
            )

        return IssuedToken(
            value=str(payload["access_token"]),
            lifetime_seconds=_expires_in(payload),
        )


__all__ = ["MicrosoftTokenizer"]
