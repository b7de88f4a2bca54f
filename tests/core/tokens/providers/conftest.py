"""Fake upstream HTTP servers for provider tests."""

from aiohttp import web
from aiohttp.test_utils import TestServer
import pytest


class Upstream:
    """Records every request a fake upstream receives."""

    def __init__(self, server: TestServer):
        self.server = server
        self.requests: list[dict] = []

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))


@pytest.fixture
async def upstream_factory():
    """
    Start a fake upstream serving ``handler`` at ``method path``.

    Handlers receive the request and return a web.Response. Every request is
    recorded (headers, body) before the handler runs.
    """
    servers: list[TestServer] = []

    async def factory(method: str, path: str, handler) -> Upstream:
        app = web.Application()
        upstream = None

        async def recording_handler(request: web.Request) -> web.Response:
            upstream.requests.append(
                {
                    "method": request.method,
                    "path": request.path,
                    "headers": dict(request.headers),
                    "body": await request.read(),
                }
            )
            return await handler(request)

        app.router.add_route(method, path, recording_handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        upstream = Upstream(server)
        return upstream

    yield factory

    for server in servers:
        await server.close()
