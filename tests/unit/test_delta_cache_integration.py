"""DeltaCache exercised over the real in-memory cache and knowledge stores."""

from unittest.mock import AsyncMock, Mock

import pytest

from ynab_mcp_tools.cache import FetchResponse, merge_flat_entities, merge_transactions
from ynab_mcp_tools.schemas import Payee, SubTransaction, Transaction

TTL = 60_000


class TestDeltaCacheRoundTrip:
    """Sequences of fetches against shared stores."""

    @pytest.mark.asyncio
    async def test_second_fetch_requests_delta_since_first(self, delta_cache, knowledge_store, clock):
        key = "payees:list:b1"
        fetcher = AsyncMock(side_effect=[
            FetchResponse(data=[Payee(id="p1", name="Grocer"), Payee(id="p2", name="Landlord")], server_knowledge=10),
            FetchResponse(data=[Payee(id="p2", deleted=True), Payee(id="p3", name="Cafe")], server_knowledge=12),
        ])

        first = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)
        assert knowledge_store.get(key) == 10
        assert first.was_cached is False

        clock.advance(1_000)
        second = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)

        assert [call.args for call in fetcher.await_args_list] == [(None,), (10,)]
        assert [p.id for p in second.data] == ["p1", "p3"]
        assert second.used_delta is True
        assert second.was_cached is True
        assert knowledge_store.get(key) == 12

    @pytest.mark.asyncio
    async def test_unchanged_knowledge_reuses_snapshot(self, delta_cache, knowledge_store, clock):
        key = "payees:list:b1"
        repeats = 3
        payees = [Payee(id="p1", name="Grocer"), Payee(id="p2", name="Landlord")]
        fetcher = AsyncMock(side_effect=[FetchResponse(data=payees, server_knowledge=10)]
                            + [FetchResponse(data=[], server_knowledge=10) for _ in range(repeats)])
        merger = Mock(side_effect=merge_flat_entities)

        results = []
        for _ in range(repeats + 1):
            results.append(await delta_cache.fetch_with_delta(key, "b1", fetcher, merger, ttl=TTL))
            clock.advance(1_000)

        assert all(result.data == payees for result in results)
        assert [result.was_cached for result in results] == [False, True, True, True]
        assert [call.args for call in fetcher.await_args_list] == [(None,), (10,), (10,), (10,)]
        merger.assert_not_called()
        stats = delta_cache.get_stats()
        assert stats.merge_operations == 0
        assert stats.delta_hits == repeats
        assert knowledge_store.get(key) == 10

    @pytest.mark.asyncio
    async def test_expired_entry_is_fetched_in_full(self, delta_cache, knowledge_store, clock):
        """The cache store drops expired entries, so knowledge alone does not allow a delta."""
        key = "payees:list:b1"
        fetcher = AsyncMock(side_effect=[
            FetchResponse(data=[Payee(id="p1")], server_knowledge=10),
            FetchResponse(data=[Payee(id="p1"), Payee(id="p2")], server_knowledge=11),
        ])

        await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)
        clock.advance(TTL + 1)
        result = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)

        assert fetcher.await_args_list[1].args == (None,)
        assert result.was_cached is False
        assert [p.id for p in result.data] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_stale_while_revalidate_keeps_entry_for_delta(self, delta_cache, clock):
        key = "payees:list:b1"
        fetcher = AsyncMock(side_effect=[
            FetchResponse(data=[Payee(id="p1")], server_knowledge=10),
            FetchResponse(data=[], server_knowledge=10),
        ])

        await delta_cache.fetch_with_delta(
            key, "b1", fetcher, merge_flat_entities, ttl=TTL, stale_while_revalidate=30_000,
        )
        clock.advance(TTL + 10_000)
        result = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)

        assert fetcher.await_args_list[1].args == (10,)
        assert result.was_cached is True
        assert [p.id for p in result.data] == ["p1"]

    @pytest.mark.asyncio
    async def test_nested_subtransactions_merge(self, delta_cache, clock):
        key = "transactions:list:b1:all:all"
        split = Transaction(
            id="t1",
            amount=-30000,
            subtransactions=[
                SubTransaction(id="s1", amount=-10000),
                SubTransaction(id="s2", amount=-20000),
            ],
        )
        fetcher = AsyncMock(side_effect=[
            FetchResponse(data=[split], server_knowledge=5),
            FetchResponse(
                data=[Transaction(
                    id="t1",
                    memo="split dinner",
                    subtransactions=[SubTransaction(id="s2", deleted=True), SubTransaction(id="s3", amount=-20000)],
                )],
                server_knowledge=6,
            ),
        ])

        await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_transactions, ttl=TTL)
        result = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_transactions, ttl=TTL)

        txn = result.data[0]
        assert txn.memo == "split dinner"
        assert txn.amount == -30000
        assert [sub.id for sub in txn.subtransactions] == ["s1", "s3"]


class TestInvalidationWithRealStores:
    """invalidate keeps knowledge; force_full_refresh drops it."""

    async def _prime(self, delta_cache, key, budget_id="b1"):
        fetcher = AsyncMock(return_value=FetchResponse(data=[Payee(id="p1")], server_knowledge=20))
        await delta_cache.fetch_with_delta(key, budget_id, fetcher, merge_flat_entities, ttl=TTL)

    @pytest.mark.asyncio
    async def test_invalidate_keeps_knowledge(self, delta_cache, cache_manager, knowledge_store, clock):
        await self._prime(delta_cache, "payees:list:b1")
        await self._prime(delta_cache, "accounts:list:b1")
        await self._prime(delta_cache, "payees:list:b2", budget_id="b2")

        delta_cache.invalidate("b1", "payees")

        assert cache_manager.keys() == ["accounts:list:b1", "payees:list:b2"]
        assert knowledge_store.get("payees:list:b1") == 20

        delta_cache.invalidate("b1")
        assert cache_manager.keys() == ["payees:list:b2"]

    @pytest.mark.asyncio
    async def test_refetch_after_invalidate_is_full(self, delta_cache, clock):
        """Without a snapshot there is nothing to merge into, so the fetch is full."""
        key = "payees:list:b1"
        await self._prime(delta_cache, key)
        delta_cache.invalidate("b1", "payees")
        fetcher = AsyncMock(return_value=FetchResponse(data=[Payee(id="p9")], server_knowledge=21))

        result = await delta_cache.fetch_with_delta(key, "b1", fetcher, merge_flat_entities, ttl=TTL)

        fetcher.assert_awaited_once_with(None)
        assert [p.id for p in result.data] == ["p9"]

    @pytest.mark.asyncio
    async def test_force_full_refresh_drops_knowledge(self, delta_cache, cache_manager, knowledge_store, clock):
        await self._prime(delta_cache, "payees:list:b1")
        await self._prime(delta_cache, "payees:list:b2", budget_id="b2")

        delta_cache.force_full_refresh("b1")

        assert knowledge_store.get("payees:list:b1") is None
        assert knowledge_store.get("payees:list:b2") == 20
        assert cache_manager.keys() == ["payees:list:b2"]

        delta_cache.force_full_refresh()
        assert knowledge_store.get_stats()["entry_count"] == 0
        assert cache_manager.keys() == []
