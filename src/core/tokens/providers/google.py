"""Google metadata-service provider."""

import json
import logging
import os

import aiohttp

from core.errors.exceptions import (
    ContextCancelledError,
    UpstreamMalformedError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
)
from core.tokens.base import DEFAULT_TIMEOUT_SECONDS, BaseTokenizer, status_line
from core.tokens.context import DEADLINE_EXCEEDED, RequestContext, run_in_context

logger = logging.getLogger(__name__)

PROVIDER_TYPE = "metadata-service"

METADATA_HOST_ENV = "GCE_METADATA_HOST"
DEFAULT_METADATA_HOST = "metadata.google.internal"
TOKEN_PATH = "/computeMetadata/v1/instance/service-accounts/default/token"


def default_token_url() -> str:
    host = os.getenv(METADATA_HOST_ENV) or DEFAULT_METADATA_HOST
    return f"http://{host}{TOKEN_PATH}"


class GoogleTokenizer(BaseTokenizer):
    """
    Metadata-service provider for the workload's default service account.

    Not cached by the broker: the co-located metadata server already caches
    and refreshes the token, so every call is a cheap local request.
    """

    provider_type = PROVIDER_TYPE

    def __init__(
        self,
        provider_name: str,
        token_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        super().__init__(provider_name, timeout)
        self.token_url = token_url or default_token_url()

    async def token(self, ctx: RequestContext | None = None) -> str:
        return await run_in_context(ctx, self._fetch())

    async def _fetch(self) -> str:
        session = await self._ensure_session()

        try:
            async with session.get(
                self.token_url,
                headers={"Metadata-Flavor": "Google"},
                timeout=self._client_timeout(),
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamRejectedError(
                        f"google: error getting token: {status_line(response)}",
                        status=response.status,
                    )
                body = await response.read()
        except TimeoutError as e:
            raise ContextCancelledError(
                f"google: error making request: {DEADLINE_EXCEEDED}", cause=e
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise UpstreamUnreachableError(
                f"google: error making request: {e}", cause=e
            ) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise UpstreamMalformedError(
                f"google: error unmarshaling body: {e}", cause=e
            ) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UpstreamMalformedError(
                "google: error getting token: response did not include an access token"
            )

        logger.debug(
            f"Fetched metadata token for '{self.provider_name}'",
            extra={"provider": self.provider_name},
        )
        return str(payload["access_token"])


__all__ = ["GoogleTokenizer"]
