"""Client for services fetching tokens from a running broker."""

import json
import logging
from typing import Optional

import aiohttp

from core.errors.exceptions import BrokerError
from core.tokens.base import status_line

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:1982"
DEFAULT_TIMEOUT_SECONDS = 30


class BrokerClient:
    """
    Fetches provider tokens from the broker's /tokens endpoint.

    Usage:
        client = BrokerClient.default(api_key)
        token = await client.token("azure")
        await client.close()
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def default(cls, api_key: str) -> "BrokerClient":
        """Client for a broker on localhost at the default port."""
        return cls(DEFAULT_URL, api_key)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def token(self, provider: str) -> str:
        """
        Get a token for ``provider``.

        Raises:
            BrokerError: On transport failure, non-2xx status or a malformed body
        """
        session = await self._ensure_session()

        try:
            async with session.get(
                f"{self.url}/tokens",
                params={"provider": provider},
                headers={"api-key": self.api_key},
            ) as response:
                if not 200 <= response.status < 300:
                    raise BrokerError(f"error getting token: {status_line(response)}")
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise BrokerError(f"error making request: {e}", cause=e) from e

        try:
            payload = json.loads(body)
            return payload["token"]
        except (ValueError, TypeError, KeyError) as e:
            raise BrokerError(f"error decoding response: {e}", cause=e) from e

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BrokerClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()


__all__ = ["BrokerClient", "DEFAULT_URL"]
