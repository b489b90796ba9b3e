"""Budget data tools: budgets, accounts, categories, payees, transactions, months."""

from typing import Annotated, Any

import structlog
from pydantic import Field

from ..services.budget_service import BudgetService
from .app import app
from .responses import error_response

logger = structlog.get_logger("tools.budgets")

BudgetIdParam = Annotated[str | None, Field(
    description="YNAB budget id. Defaults to YNAB_DEFAULT_BUDGET when omitted",
)]

ForceRefreshParam = Annotated[bool, Field(
    description="Skip delta requests and resync the full list (a still-fresh cached list is reused)",
)]


@app.tool(tags={"ynab", "budgets", "read"})
async def list_budgets(force_refresh: ForceRefreshParam = False) -> dict[str, Any]:
    """List the budgets available to the configured YNAB token."""
    try:
        return await BudgetService.list_budgets(force_refresh=force_refresh)
    except Exception as e:
        logger.error("Failed to list budgets", error=str(e))
        return error_response("LIST_BUDGETS_FAILED", e)


@app.tool(tags={"ynab", "accounts", "read"})
async def list_accounts(
    budget_id: BudgetIdParam = None,
    include_closed: Annotated[bool, Field(
        description="Include closed accounts",
    )] = False,
    force_refresh: ForceRefreshParam = False,
) -> dict[str, Any]:
    """List accounts with balances converted from milliunits to currency."""
    try:
        return await BudgetService.list_accounts(
            budget_id=budget_id,
            include_closed=include_closed,
            force_refresh=force_refresh,
        )
    except Exception as e:
        logger.error("Failed to list accounts", budget_id=budget_id, error=str(e))
        return error_response("LIST_ACCOUNTS_FAILED", e)


@app.tool(tags={"ynab", "categories", "read"})
async def list_categories(
    budget_id: BudgetIdParam = None,
    include_hidden: Annotated[bool, Field(
        description="Include hidden category groups and categories",
    )] = False,
    force_refresh: ForceRefreshParam = False,
) -> dict[str, Any]:
    """List category groups and their categories for the current month."""
    try:
        return await BudgetService.list_categories(
            budget_id=budget_id,
            include_hidden=include_hidden,
            force_refresh=force_refresh,
        )
    except Exception as e:
        logger.error("Failed to list categories", budget_id=budget_id, error=str(e))
        return error_response("LIST_CATEGORIES_FAILED", e)


@app.tool(tags={"ynab", "payees", "read"})
async def list_payees(
    budget_id: BudgetIdParam = None,
    force_refresh: ForceRefreshParam = False,
) -> dict[str, Any]:
    """List payees."""
    try:
        return await BudgetService.list_payees(budget_id=budget_id, force_refresh=force_refresh)
    except Exception as e:
        logger.error("Failed to list payees", budget_id=budget_id, error=str(e))
        return error_response("LIST_PAYEES_FAILED", e)


@app.tool(tags={"ynab", "transactions", "read"})
async def list_transactions(
    budget_id: BudgetIdParam = None,
    account_id: Annotated[str | None, Field(
        description="Only transactions for this account",
    )] = None,
    since_date: Annotated[str | None, Field(
        description="Only transactions on or after this date (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
    )] = None,
    type: Annotated[str | None, Field(
        description="Filter by transaction type",
        pattern=r"^(uncategorized|unapproved)$",
    )] = None,
    limit: Annotated[int | None, Field(
        description="Maximum number of transactions to return (newest first)",
        ge=1,
        le=1000,
    )] = None,
    force_refresh: ForceRefreshParam = False,
) -> dict[str, Any]:
    """List transactions, newest first, with amounts in currency units.

    Repeated calls only pull changes since the last request when delta
    fetching is enabled.
    """
    try:
        return await BudgetService.list_transactions(
            budget_id=budget_id,
            account_id=account_id,
            since_date=since_date,
            type=type,
            limit=limit,
            force_refresh=force_refresh,
        )
    except Exception as e:
        logger.error("Failed to list transactions", budget_id=budget_id, account_id=account_id, error=str(e))
        return error_response("LIST_TRANSACTIONS_FAILED", e)


@app.tool(tags={"ynab", "months", "read"})
async def list_months(
    budget_id: BudgetIdParam = None,
    force_refresh: ForceRefreshParam = False,
) -> dict[str, Any]:
    """List budget month summaries, newest first."""
    try:
        return await BudgetService.list_months(budget_id=budget_id, force_refresh=force_refresh)
    except Exception as e:
        logger.error("Failed to list months", budget_id=budget_id, error=str(e))
        return error_response("LIST_MONTHS_FAILED", e)
