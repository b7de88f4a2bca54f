"""Tests for logging context variables."""

import asyncio

from core.logging.context import clear_log_context, get_log_context, set_log_context


class TestLogContext:
    def test_defaults_empty(self):
        clear_log_context()
        assert get_log_context() == {"request_id": "", "provider": "", "component": ""}

    def test_set_and_get(self):
        set_log_context(request_id="r-1", provider="azure", component="token-broker")

        assert get_log_context() == {
            "request_id": "r-1",
            "provider": "azure",
            "component": "token-broker",
        }

    def test_none_leaves_value_unchanged(self):
        set_log_context(provider="azure")
        set_log_context(request_id="r-2")

        assert get_log_context()["provider"] == "azure"
        assert get_log_context()["request_id"] == "r-2"

    def test_clear(self):
        set_log_context(request_id="r-1", provider="azure")
        clear_log_context()

        assert get_log_context()["request_id"] == ""
        assert get_log_context()["provider"] == ""

    async def test_isolated_between_tasks(self):
        async def handle(provider):
            set_log_context(provider=provider)
            await asyncio.sleep(0.01)
            return get_log_context()["provider"]

        results = await asyncio.gather(handle("azure"), handle("rancher"))

        assert results == ["azure", "rancher"]
