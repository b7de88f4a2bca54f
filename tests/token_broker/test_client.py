"""Tests for BrokerClient against a fake broker."""

from aiohttp import web
from aiohttp.test_utils import TestServer
import pytest

from core.errors.exceptions import BrokerError
from token_broker.client import DEFAULT_URL, BrokerClient


@pytest.fixture
async def broker_url():
    requests = []

    async def tokens(request):
        requests.append(request)
        provider = request.query.get("provider")
        if request.headers.get("api-key") != "key":
            return web.json_response({"error": "bad api key"}, status=403)
        if provider == "unknown":
            return web.json_response(
                {"error": "unsupported token provider: unknown"}, status=400
            )
        if provider == "garbled":
            return web.Response(text="<html>", content_type="text/html")
        return web.json_response({"token": f"{provider}-token"})

    app = web.Application()
    app.router.add_get("/tokens", tokens)
    server = TestServer(app)
    await server.start_server()

    yield str(server.make_url(""))

    await server.close()


class TestBrokerClient:
    def test_default_targets_localhost(self):
        client = BrokerClient.default("key")

        assert client.url == DEFAULT_URL == "http://localhost:1982"
        assert client.api_key == "key"

    async def test_returns_token(self, broker_url):
        async with BrokerClient(broker_url, "key") as client:
            assert await client.token("azure") == "azure-token"

    async def test_non_success_status(self, broker_url):
        async with BrokerClient(broker_url, "key") as client:
            with pytest.raises(BrokerError) as exc_info:
                await client.token("unknown")

        assert str(exc_info.value) == "error getting token: 400 Bad Request"

    async def test_bad_api_key(self, broker_url):
        async with BrokerClient(broker_url, "wrong") as client:
            with pytest.raises(BrokerError, match="403 Forbidden"):
                await client.token("azure")

    async def test_malformed_response(self, broker_url):
        async with BrokerClient(broker_url, "key") as client:
            with pytest.raises(BrokerError) as exc_info:
                await client.token("garbled")

        assert str(exc_info.value).startswith("error decoding response: ")

    async def test_unreachable_broker(self):
        async with BrokerClient("http://127.0.0.1:1", "key") as client:
            with pytest.raises(BrokerError, match="error making request"):
                await client.token("azure")
