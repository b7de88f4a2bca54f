"""
Token broker HTTP service.

Endpoints:
    GET /tokens?provider=<name> - Access token for a provider (default: google)
    GET /healthz - Liveness probe, unauthenticated

Every endpoint except /healthz requires the configured key in the
``Api-Key`` header.
"""

import hmac
import logging
import time
from typing import Optional

from aiohttp import web

from core.errors.exceptions import BrokerError, UnsupportedProviderError
from core.logging import generate_request_id, set_log_context
from core.tokens.context import RequestContext
from token_broker.registry import ProviderRegistry

logger = logging.getLogger(__name__)

API_KEY_HEADER = "Api-Key"
UNAUTHENTICATED_PATHS = frozenset({"/healthz"})


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def api_key_middleware(api_key: str):
    """Reject requests whose Api-Key header does not match ``api_key``."""
    expected = api_key.encode()

    @web.middleware
    async def middleware(request: web.Request, handler):
        if request.path in UNAUTHENTICATED_PATHS:
            return await handler(request)

        given = request.headers.get(API_KEY_HEADER, "").encode()
        if not hmac.compare_digest(given, expected):
            logger.warning(
                "Rejected request with bad api key",
                extra={
                    "http_method": request.method,
                    "http_url": request.path,
                    "remote": request.remote,
                },
            )
            return _error("bad api key", 403)

        return await handler(request)

    return middleware


class TokenBrokerServer:
    """HTTP front end dispatching token requests to the provider registry."""

    def __init__(
        self,
        registry: ProviderRegistry,
        api_key: str,
        host: str = "0.0.0.0",
        port: int = 1982,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize the broker service.

        Args:
            registry: Provider registry built at startup
            api_key: Key every authenticated request must present
            host: Interface to bind
            port: HTTP port to listen on
            request_timeout: Optional deadline in seconds for each token
                request; providers still bound each upstream call themselves
        """
        self.registry = registry
        self.host = host
        self.port = port
        self.request_timeout = request_timeout
        self._api_key = api_key
        self._runner: Optional[web.AppRunner] = None
        self.app = self._create_app()

    def _create_app(self) -> web.Application:
        app = web.Application(middlewares=[api_key_middleware(self._api_key)])
        app.router.add_get("/tokens", self.handle_tokens)
        app.router.add_get("/healthz", self.handle_healthz)
        return app

    def _request_context(self, provider: str) -> RequestContext:
        if self.request_timeout:
            return RequestContext.with_timeout(self.request_timeout, provider=provider)
        return RequestContext(provider=provider)

    async def handle_healthz(self, request: web.Request) -> web.Response:
        return web.Response(status=200)

    async def handle_tokens(self, request: web.Request) -> web.Response:
        """
        Handle GET /tokens.

        Returns:
            200 {"token": ...}
            400 {"error": "unsupported token provider: <name>"}
            500 {"error": <provider error>}
        """
        provider = self.registry.resolve_name(request.query.get("provider"))
        set_log_context(request_id=generate_request_id(), provider=provider)

        tokenizer = self.registry.lookup(provider)
        if tokenizer is None:
            err = UnsupportedProviderError(provider)
            logger.info(str(err), extra={"provider": provider, "http_status": 400})
            return _error(str(err), 400)

        start = time.perf_counter()
        try:
            token = await tokenizer.token(self._request_context(provider))
        except BrokerError as e:
            logger.warning(
                f"Token request for '{provider}' failed: {e}",
                extra={
                    "provider": provider,
                    "http_status": 500,
                    "error_category": e.category.value,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            return _error(str(e), 500)
        except Exception as e:
            logger.error(
                f"Unexpected error getting token for '{provider}': {e}",
                extra={"provider": provider, "http_status": 500},
                exc_info=True,
            )
            return _error(str(e), 500)

        logger.debug(
            f"Issued token for '{provider}'",
            extra={
                "provider": provider,
                "http_status": 200,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return web.json_response({"token": token})

    async def start(self) -> None:
        """Start serving."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(
            f"Token broker listening on {self.host}:{self.port}",
            extra={
                "host": self.host,
                "port": self.port,
                "provider_count": len(self.registry),
            },
        )

    async def stop(self) -> None:
        """Stop serving; in-flight requests are given a chance to finish."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Token broker stopped")


__all__ = ["TokenBrokerServer", "api_key_middleware"]
