"""Async client for the YNAB REST API.

Only the list endpoints the delta cache needs are covered. Each method accepts
an optional ``last_knowledge_of_server``; when given, YNAB returns only the
entities changed since that knowledge (deletions arrive as ``deleted: true``).
"""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from .cache.delta import FetchResponse
from .errors import ConfigurationError, YnabApiError
from .schemas import (
    Account,
    BudgetSummary,
    CategoryGroup,
    MonthSummary,
    Payee,
    ScheduledTransaction,
    Transaction,
)

logger = structlog.get_logger("ynab.client")

DEFAULT_BASE_URL = "https://api.ynab.com/v1"

M = TypeVar("M", bound=BaseModel)


class YnabClient:
    """Client for the YNAB API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not access_token:
            raise ConfigurationError("YNAB access token not configured. Set YNAB_ACCESS_TOKEN.")

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {access_token}",
            },
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "YnabClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Return the ``data`` payload or raise ``YnabApiError``."""
        if response.status_code == 401:
            raise YnabApiError(401, "Unauthorized", "Check that YNAB_ACCESS_TOKEN is valid")

        if response.status_code >= 400:
            try:
                error_data = response.json().get("error", {})
                message = error_data.get("name") or "API Error"
                detail = error_data.get("detail")
            except (ValueError, AttributeError):
                message = "API Error"
                detail = response.text
            raise YnabApiError(response.status_code, message, detail)

        return response.json().get("data", {})

    async def _get_list(
        self,
        path: str,
        collection: str,
        model: type[M],
        params: dict[str, Any] | None = None,
        last_knowledge_of_server: int | None = None,
    ) -> FetchResponse[M]:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        if last_knowledge_of_server is not None:
            query["last_knowledge_of_server"] = last_knowledge_of_server

        response = await self._client.get(path, params=query)
        data = self._handle_response(response)
        items = [model.model_validate(item) for item in data.get(collection, [])]

        logger.debug("YNAB list fetched",
                     path=path,
                     count=len(items),
                     delta=last_knowledge_of_server is not None,
                     server_knowledge=data.get("server_knowledge"))

        return FetchResponse(data=items, server_knowledge=data.get("server_knowledge") or 0)

    async def get_budgets(self) -> FetchResponse[BudgetSummary]:
        return await self._get_list("/budgets", "budgets", BudgetSummary)

    async def get_accounts(
        self, budget_id: str, last_knowledge_of_server: int | None = None
    ) -> FetchResponse[Account]:
        return await self._get_list(
            f"/budgets/{budget_id}/accounts", "accounts", Account,
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_categories(
        self, budget_id: str, last_knowledge_of_server: int | None = None
    ) -> FetchResponse[CategoryGroup]:
        return await self._get_list(
            f"/budgets/{budget_id}/categories", "category_groups", CategoryGroup,
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_payees(
        self, budget_id: str, last_knowledge_of_server: int | None = None
    ) -> FetchResponse[Payee]:
        return await self._get_list(
            f"/budgets/{budget_id}/payees", "payees", Payee,
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_transactions(
        self,
        budget_id: str,
        since_date: str | None = None,
        type: str | None = None,
        last_knowledge_of_server: int | None = None,
    ) -> FetchResponse[Transaction]:
        """List transactions; ``type`` may be ``uncategorized`` or ``unapproved``."""
        return await self._get_list(
            f"/budgets/{budget_id}/transactions", "transactions", Transaction,
            params={"since_date": since_date, "type": type},
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_transactions_by_account(
        self,
        budget_id: str,
        account_id: str,
        since_date: str | None = None,
        last_knowledge_of_server: int | None = None,
    ) -> FetchResponse[Transaction]:
        return await self._get_list(
            f"/budgets/{budget_id}/accounts/{account_id}/transactions", "transactions", Transaction,
            params={"since_date": since_date},
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_scheduled_transactions(
        self, budget_id: str, last_knowledge_of_server: int | None = None
    ) -> FetchResponse[ScheduledTransaction]:
        return await self._get_list(
            f"/budgets/{budget_id}/scheduled_transactions", "scheduled_transactions", ScheduledTransaction,
            last_knowledge_of_server=last_knowledge_of_server,
        )

    async def get_budget_months(
        self, budget_id: str, last_knowledge_of_server: int | None = None
    ) -> FetchResponse[MonthSummary]:
        return await self._get_list(
            f"/budgets/{budget_id}/months", "months", MonthSummary,
            last_knowledge_of_server=last_knowledge_of_server,
        )
