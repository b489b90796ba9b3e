"""Lifecycle of the shared delta cache context."""

from unittest.mock import AsyncMock, patch

import pytest

from ynab_mcp_tools import server
from ynab_mcp_tools.services.delta_fetcher import DeltaFetcher
from ynab_mcp_tools.services.delta_support import DeltaSupport


class TestDeltaSupportClose:

    @pytest.mark.asyncio
    async def test_aclose_closes_client_and_keeps_cache(self, fake_api, delta_cache):
        client = fake_api.client()
        DeltaSupport.configure(delta_cache=delta_cache, client=client, delta_fetcher=DeltaFetcher(client, delta_cache))

        await DeltaSupport.aclose()

        assert client.is_closed
        assert DeltaSupport._client is None
        assert DeltaSupport._delta_fetcher is None
        assert DeltaSupport.get_delta_cache() is delta_cache

    @pytest.mark.asyncio
    async def test_aclose_without_client(self):
        await DeltaSupport.aclose()

        assert DeltaSupport._client is None

    @pytest.mark.asyncio
    async def test_next_fetcher_gets_new_client(self, fake_api, delta_cache, clean_env):
        clean_env.setenv("YNAB_ACCESS_TOKEN", "token")
        client = fake_api.client()
        DeltaSupport.configure(delta_cache=delta_cache, client=client)

        await DeltaSupport.aclose()
        fetcher = DeltaSupport.get_delta_fetcher()

        assert fetcher.client is not client
        assert not fetcher.client.is_closed
        await DeltaSupport.aclose()


class TestServe:

    @pytest.mark.asyncio
    async def test_client_closed_when_server_stops(self, fake_api, delta_cache):
        client = fake_api.client()
        DeltaSupport.configure(delta_cache=delta_cache, client=client)

        with patch.object(server.app, "run_async", AsyncMock()) as run_async:
            await server.serve()

        run_async.assert_awaited_once()
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_client_closed_when_server_fails(self, fake_api, delta_cache):
        client = fake_api.client()
        DeltaSupport.configure(delta_cache=delta_cache, client=client)

        with patch.object(server.app, "run_async", AsyncMock(side_effect=RuntimeError("transport died"))):
            with pytest.raises(RuntimeError, match="transport died"):
                await server.serve()

        assert client.is_closed
