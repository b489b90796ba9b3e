"""Per-resource wiring between the YNAB client and the delta cache."""

from dataclasses import dataclass
from typing import Any

from ..cache import (
    CACHE_TTLS,
    CacheManager,
    DeltaCache,
    DeltaFetchResult,
    FetchResponse,
    merge_categories,
    merge_flat_entities,
    merge_months,
    merge_transactions,
)
from ..schemas import (
    Account,
    BudgetSummary,
    CategoryGroup,
    MonthSummary,
    Payee,
    ScheduledTransaction,
    Transaction,
)
from ..ynab_client import YnabClient


@dataclass
class DeltaFetchOptions:
    force_full_refresh: bool | None = None
    ttl: float | None = None


class DeltaFetcher:
    """Fetches YNAB collections through the delta cache.

    Cache keys follow ``<resource>:list:<budget_id>`` so that
    ``DeltaCache.invalidate(budget_id, resource)`` can target them by prefix.
    """

    def __init__(self, client: YnabClient, delta_cache: DeltaCache):
        self.client = client
        self.delta_cache = delta_cache

    async def fetch_accounts(
        self, budget_id: str, options: DeltaFetchOptions | None = None
    ) -> DeltaFetchResult[Account]:
        cache_key = CacheManager.generate_key("accounts", "list", budget_id)

        async def fetcher(last_knowledge: int | None) -> FetchResponse[Account]:
            return await self.client.get_accounts(budget_id, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_flat_entities,
            **self._build_delta_options(CACHE_TTLS["accounts"], options),
        )

    async def fetch_categories(
        self, budget_id: str, options: DeltaFetchOptions | None = None
    ) -> DeltaFetchResult[CategoryGroup]:
        cache_key = CacheManager.generate_key("categories", "list", budget_id)

        async def fetcher(last_knowledge: int | None) -> FetchResponse[CategoryGroup]:
            return await self.client.get_categories(budget_id, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_categories,
            **self._build_delta_options(CACHE_TTLS["categories"], options),
        )

    async def fetch_payees(
        self, budget_id: str, options: DeltaFetchOptions | None = None
    ) -> DeltaFetchResult[Payee]:
        cache_key = CacheManager.generate_key("payees", "list", budget_id)

        async def fetcher(last_knowledge: int | None) -> FetchResponse[Payee]:
            return await self.client.get_payees(budget_id, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_flat_entities,
            **self._build_delta_options(CACHE_TTLS["payees"], options),
        )

    async def fetch_months(
        self, budget_id: str, options: DeltaFetchOptions | None = None
    ) -> DeltaFetchResult[MonthSummary]:
        cache_key = CacheManager.generate_key("months", "list", budget_id)

        async def fetcher(last_knowledge: int | None) -> FetchResponse[MonthSummary]:
            return await self.client.get_budget_months(budget_id, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_months,
            **self._build_delta_options(CACHE_TTLS["months"], options),
        )

    async def fetch_scheduled_transactions(
        self, budget_id: str, options: DeltaFetchOptions | None = None
    ) -> DeltaFetchResult[ScheduledTransaction]:
        cache_key = CacheManager.generate_key("scheduled_transactions", "list", budget_id)

        async def fetcher(last_knowledge: int | None) -> FetchResponse[ScheduledTransaction]:
            return await self.client.get_scheduled_transactions(budget_id, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_flat_entities,
            **self._build_delta_options(CACHE_TTLS["scheduled_transactions"], options),
        )

    async def fetch_transactions(
        self,
        budget_id: str,
        since_date: str | None = None,
        type: str | None = None,
        options: DeltaFetchOptions | None = None,
    ) -> DeltaFetchResult[Transaction]:
        cache_key = CacheManager.generate_key(
            "transactions", "list", budget_id, since_date or "all", type or "all",
        )

        async def fetcher(last_knowledge: int | None) -> FetchResponse[Transaction]:
            return await self.client.get_transactions(budget_id, since_date, type, last_knowledge)

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_transactions,
            **self._build_delta_options(CACHE_TTLS["transactions"], options),
        )

    async def fetch_transactions_by_account(
        self,
        budget_id: str,
        account_id: str,
        since_date: str | None = None,
        options: DeltaFetchOptions | None = None,
    ) -> DeltaFetchResult[Transaction]:
        # Not under "transactions:list:" so resource invalidation leaves it alone;
        # budget-wide invalidation still reaches it.
        cache_key = CacheManager.generate_key(
            "transactions", "account", budget_id, account_id, since_date or "all",
        )

        async def fetcher(last_knowledge: int | None) -> FetchResponse[Transaction]:
            return await self.client.get_transactions_by_account(
                budget_id, account_id, since_date, last_knowledge,
            )

        return await self.delta_cache.fetch_with_delta(
            cache_key, budget_id, fetcher, merge_transactions,
            **self._build_delta_options(CACHE_TTLS["transactions"], options),
        )

    async def fetch_budgets(self, options: DeltaFetchOptions | None = None) -> DeltaFetchResult[BudgetSummary]:
        """Budgets have no delta support upstream, so every fetch is a full one."""
        cache_key = CacheManager.generate_key("budgets", "list")

        async def fetcher(last_knowledge: int | None) -> FetchResponse[BudgetSummary]:
            return await self.client.get_budgets()

        ttl = options.ttl if options and options.ttl is not None else CACHE_TTLS["budgets"]
        return await self.delta_cache.fetch_with_delta(
            cache_key, "global", fetcher, merge_flat_entities,
            ttl=ttl,
            force_full_refresh=True,
        )

    async def fetch_accounts_full(self, budget_id: str) -> DeltaFetchResult[Account]:
        """Uncached full account list, for callers that need upstream truth."""
        response = await self.client.get_accounts(budget_id)
        return DeltaFetchResult(
            data=[account for account in response.data if not account.deleted],
            was_cached=False,
            used_delta=False,
            server_knowledge=response.server_knowledge,
        )

    async def fetch_transactions_by_account_full(
        self, budget_id: str, account_id: str, since_date: str | None = None
    ) -> DeltaFetchResult[Transaction]:
        response = await self.client.get_transactions_by_account(budget_id, account_id, since_date)
        return DeltaFetchResult(
            data=[txn for txn in response.data if not txn.deleted],
            was_cached=False,
            used_delta=False,
            server_knowledge=response.server_knowledge,
        )

    @staticmethod
    def _build_delta_options(default_ttl: float, options: DeltaFetchOptions | None) -> dict[str, Any]:
        built: dict[str, Any] = {
            "ttl": options.ttl if options and options.ttl is not None else default_ttl,
        }
        if options and options.force_full_refresh is not None:
            built["force_full_refresh"] = options.force_full_refresh
        return built
