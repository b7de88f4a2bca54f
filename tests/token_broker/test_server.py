"""Tests for the broker HTTP surface."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from aiohttp.test_utils import TestClient, TestServer
import pytest

from core.errors.exceptions import ContextCancelledError, UpstreamRejectedError
from core.tokens.context import RequestContext
from token_broker.registry import ProviderRegistry
from token_broker.server import TokenBrokerServer

API_KEY = "test-api-key"
HEADERS = {"Api-Key": API_KEY}


def _mock_tokenizer(token="tok", accepts_subnames=False):
    tokenizer = MagicMock()
    tokenizer.accepts_subnames = accepts_subnames
    tokenizer.token = AsyncMock(return_value=token)
    tokenizer.close = AsyncMock()
    return tokenizer


@pytest.fixture
def tokenizers():
    return {
        "google": _mock_tokenizer("google-token"),
        "azure": _mock_tokenizer("azure-token"),
        "vault-k8s": _mock_tokenizer("kube-token", accepts_subnames=True),
    }


@pytest.fixture
def broker(tokenizers):
    return TokenBrokerServer(ProviderRegistry(tokenizers), api_key=API_KEY)


@pytest.fixture
async def client(broker):
    async with TestClient(TestServer(broker.app)) as client:
        yield client


class TestAuthentication:
    async def test_missing_api_key(self, client, tokenizers):
        resp = await client.get("/tokens", params={"provider": "azure"})

        assert resp.status == 403
        assert await resp.json() == {"error": "bad api key"}
        tokenizers["azure"].token.assert_not_called()

    async def test_wrong_api_key(self, client):
        resp = await client.get("/tokens", headers={"Api-Key": "nope"})

        assert resp.status == 403
        assert await resp.json() == {"error": "bad api key"}

    async def test_header_name_case_insensitive(self, client):
        resp = await client.get("/tokens", headers={"api-key": API_KEY})
        assert resp.status == 200

    async def test_unknown_route_requires_key(self, client):
        resp = await client.get("/metrics")
        assert resp.status == 403

    async def test_healthz_unauthenticated(self, client):
        resp = await client.get("/healthz")

        assert resp.status == 200
        assert await resp.read() == b""


class TestTokens:
    async def test_returns_token(self, client, tokenizers):
        resp = await client.get("/tokens", params={"provider": "azure"}, headers=HEADERS)

        assert resp.status == 200
        assert resp.content_type == "application/json"
        assert await resp.json() == {"token": "azure-token"}
        tokenizers["azure"].token.assert_awaited_once()

    async def test_default_provider(self, client, tokenizers):
        resp = await client.get("/tokens", headers=HEADERS)

        assert resp.status == 200
        assert await resp.json() == {"token": "google-token"}

    async def test_empty_provider_uses_default(self, client):
        resp = await client.get("/tokens", params={"provider": ""}, headers=HEADERS)
        assert await resp.json() == {"token": "google-token"}

    async def test_unsupported_provider(self, client):
        resp = await client.get("/tokens", params={"provider": "unknown"}, headers=HEADERS)

        assert resp.status == 400
        assert await resp.json() == {"error": "unsupported token provider: unknown"}

    async def test_tokenizer_error(self, client, tokenizers):
        tokenizers["azure"].token.side_effect = UpstreamRejectedError(
            "microsoft: error getting token: 401 Unauthorized", status=401
        )

        resp = await client.get("/tokens", params={"provider": "azure"}, headers=HEADERS)

        assert resp.status == 500
        assert await resp.json() == {
            "error": "microsoft: error getting token: 401 Unauthorized"
        }

    async def test_unexpected_error(self, client, tokenizers):
        tokenizers["azure"].token.side_effect = RuntimeError("boom")

        resp = await client.get("/tokens", params={"provider": "azure"}, headers=HEADERS)

        assert resp.status == 500
        assert await resp.json() == {"error": "boom"}

    async def test_requested_name_passed_in_context(self, client, tokenizers):
        resp = await client.get(
            "/tokens", params={"provider": "vault-k8s-np-my-cluster"}, headers=HEADERS
        )

        assert await resp.json() == {"token": "kube-token"}
        ctx = tokenizers["vault-k8s"].token.await_args.args[0]
        assert isinstance(ctx, RequestContext)
        assert ctx.provider == "vault-k8s-np-my-cluster"
        assert ctx.deadline is None


class TestRequestTimeout:
    async def test_deadline_applied(self, tokenizers):
        async def slow(ctx):
            await asyncio.sleep(0)
            raise ContextCancelledError("context deadline exceeded")

        tokenizers["azure"].token.side_effect = slow
        broker = TokenBrokerServer(ProviderRegistry(tokenizers), api_key=API_KEY, request_timeout=5)

        async with TestClient(TestServer(broker.app)) as client:
            resp = await client.get("/tokens", params={"provider": "azure"}, headers=HEADERS)

            assert resp.status == 500
            assert await resp.json() == {"error": "context deadline exceeded"}

        ctx = tokenizers["azure"].token.await_args.args[0]
        assert ctx.deadline is not None


class TestLifecycle:
    async def test_start_and_stop(self, tokenizers):
        broker = TokenBrokerServer(
            ProviderRegistry(tokenizers), api_key=API_KEY, host="127.0.0.1", port=0
        )

        await broker.start()
        assert broker._runner is not None

        await broker.stop()
        assert broker._runner is None

    async def test_stop_without_start(self, broker):
        await broker.stop()
