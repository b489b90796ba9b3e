"""Budget data service: fetches through the delta cache and shapes tool responses."""

import os
from dataclasses import asdict
from typing import Any

import structlog

from ..cache import DeltaFetchResult
from ..config import config
from ..errors import ValidationError
from ..schemas import Account, CategoryGroup, MonthSummary, Payee, Transaction
from ..utils.money import DEFAULT_DECIMAL_DIGITS, format_currency
from .delta_fetcher import DeltaFetchOptions
from .delta_support import DeltaSupport

logger = structlog.get_logger("services.budget")

RESOURCE_TYPES = (
    "accounts",
    "categories",
    "payees",
    "transactions",
    "scheduled_transactions",
    "months",
)

BUDGETS_CACHE_KEY = "budgets:list"


def _provenance(result: DeltaFetchResult) -> dict[str, Any]:
    return {
        "cached": result.was_cached,
        "used_delta": result.used_delta,
        "server_knowledge": result.server_knowledge,
    }


def _fetch_options(force_refresh: bool) -> DeltaFetchOptions | None:
    return DeltaFetchOptions(force_full_refresh=True) if force_refresh else None


def _account_view(account: Account, digits: int) -> dict[str, Any]:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type,
        "on_budget": account.on_budget,
        "closed": account.closed,
        "balance": format_currency(account.balance, digits),
        "cleared_balance": format_currency(account.cleared_balance, digits),
        "uncleared_balance": format_currency(account.uncleared_balance, digits),
    }


def _category_group_view(group: CategoryGroup, include_hidden: bool, digits: int) -> dict[str, Any]:
    categories = [
        {
            "id": category.id,
            "name": category.name,
            "hidden": category.hidden,
            "budgeted": format_currency(category.budgeted, digits),
            "activity": format_currency(category.activity, digits),
            "balance": format_currency(category.balance, digits),
        }
        for category in group.categories or []
        if not category.deleted and (include_hidden or not category.hidden)
    ]
    return {"id": group.id, "name": group.name, "hidden": group.hidden, "categories": categories}


def _payee_view(payee: Payee) -> dict[str, Any]:
    return {"id": payee.id, "name": payee.name, "transfer_account_id": payee.transfer_account_id}


def _transaction_view(txn: Transaction, digits: int) -> dict[str, Any]:
    view = {
        "id": txn.id,
        "date": txn.date,
        "amount": format_currency(txn.amount, digits),
        "memo": txn.memo,
        "cleared": txn.cleared,
        "approved": txn.approved,
        "account_id": txn.account_id,
        "account_name": txn.account_name,
        "payee_name": txn.payee_name,
        "category_name": txn.category_name,
    }
    if txn.subtransactions:
        view["subtransactions"] = [
            {
                "id": sub.id,
                "amount": format_currency(sub.amount, digits),
                "memo": sub.memo,
                "category_name": sub.category_name,
            }
            for sub in txn.subtransactions
            if not sub.deleted
        ]
    return view


def _month_view(month: MonthSummary, digits: int) -> dict[str, Any]:
    return {
        "month": month.month,
        "income": format_currency(month.income, digits),
        "budgeted": format_currency(month.budgeted, digits),
        "activity": format_currency(month.activity, digits),
        "to_be_budgeted": format_currency(month.to_be_budgeted, digits),
        "age_of_money": month.age_of_money,
    }


class BudgetService:
    """Service for reading YNAB budget data through the shared delta cache."""

    @staticmethod
    def resolve_budget_id(budget_id: str | None) -> str:
        """Use the given budget id or fall back to the configured default.

        Raises:
            ValidationError: If no budget id is available
        """
        resolved = budget_id or os.environ.get("YNAB_DEFAULT_BUDGET") or config.get("ynab.default_budget_id")
        if not resolved:
            raise ValidationError(
                "budget_id is required. Pass it explicitly or set YNAB_DEFAULT_BUDGET."
            )
        return resolved

    @staticmethod
    def decimal_digits(budget_id: str) -> int:
        """Decimal digits of the budget's currency, from the cached budget list.

        Falls back to two digits until ``list_budgets`` has populated the cache.
        """
        entry = DeltaSupport.get_cache_manager().get(BUDGETS_CACHE_KEY)
        if entry is None:
            return DEFAULT_DECIMAL_DIGITS

        for budget in entry.snapshot:
            if budget.id == budget_id and budget.currency_format and budget.currency_format.decimal_digits is not None:
                return budget.currency_format.decimal_digits
        return DEFAULT_DECIMAL_DIGITS

    @staticmethod
    async def list_budgets(force_refresh: bool = False) -> dict[str, Any]:
        fetcher = DeltaSupport.get_delta_fetcher()
        if force_refresh:
            DeltaSupport.get_delta_cache().cache_manager.delete(BUDGETS_CACHE_KEY)
        result = await fetcher.fetch_budgets()
        return {
            "budgets": [
                {
                    "id": budget.id,
                    "name": budget.name,
                    "last_modified_on": budget.last_modified_on,
                    "first_month": budget.first_month,
                    "last_month": budget.last_month,
                    "currency": budget.currency_format.iso_code if budget.currency_format else None,
                    "decimal_digits": (
                        budget.currency_format.decimal_digits
                        if budget.currency_format and budget.currency_format.decimal_digits is not None
                        else DEFAULT_DECIMAL_DIGITS
                    ),
                }
                for budget in result.data
            ],
            **_provenance(result),
        }

    @staticmethod
    async def list_accounts(
        budget_id: str | None = None,
        include_closed: bool = False,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        resolved = BudgetService.resolve_budget_id(budget_id)
        result = await DeltaSupport.get_delta_fetcher().fetch_accounts(resolved, _fetch_options(force_refresh))
        digits = BudgetService.decimal_digits(resolved)
        accounts = [
            _account_view(account, digits)
            for account in result.data
            if include_closed or not account.closed
        ]
        return {"budget_id": resolved, "accounts": accounts, "count": len(accounts), **_provenance(result)}

    @staticmethod
    async def list_categories(
        budget_id: str | None = None,
        include_hidden: bool = False,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        resolved = BudgetService.resolve_budget_id(budget_id)
        result = await DeltaSupport.get_delta_fetcher().fetch_categories(resolved, _fetch_options(force_refresh))
        digits = BudgetService.decimal_digits(resolved)
        groups = [
            _category_group_view(group, include_hidden, digits)
            for group in result.data
            if include_hidden or not group.hidden
        ]
        return {"budget_id": resolved, "category_groups": groups, **_provenance(result)}

    @staticmethod
    async def list_payees(budget_id: str | None = None, force_refresh: bool = False) -> dict[str, Any]:
        resolved = BudgetService.resolve_budget_id(budget_id)
        result = await DeltaSupport.get_delta_fetcher().fetch_payees(resolved, _fetch_options(force_refresh))
        payees = [_payee_view(payee) for payee in result.data]
        return {"budget_id": resolved, "payees": payees, "count": len(payees), **_provenance(result)}

    @staticmethod
    async def list_transactions(
        budget_id: str | None = None,
        account_id: str | None = None,
        since_date: str | None = None,
        type: str | None = None,
        limit: int | None = None,
        force_refresh: bool = False,
    ) -> dict[str, Any]:
        resolved = BudgetService.resolve_budget_id(budget_id)
        fetcher = DeltaSupport.get_delta_fetcher()
        options = _fetch_options(force_refresh)

        if account_id:
            result = await fetcher.fetch_transactions_by_account(resolved, account_id, since_date, options)
        else:
            result = await fetcher.fetch_transactions(resolved, since_date, type, options)

        digits = BudgetService.decimal_digits(resolved)
        transactions = sorted(result.data, key=lambda txn: txn.date or "", reverse=True)
        total = len(transactions)
        if limit is not None:
            transactions = transactions[:limit]

        return {
            "budget_id": resolved,
            "transactions": [_transaction_view(txn, digits) for txn in transactions],
            "count": len(transactions),
            "total_count": total,
            **_provenance(result),
        }

    @staticmethod
    async def list_months(budget_id: str | None = None, force_refresh: bool = False) -> dict[str, Any]:
        resolved = BudgetService.resolve_budget_id(budget_id)
        result = await DeltaSupport.get_delta_fetcher().fetch_months(resolved, _fetch_options(force_refresh))
        digits = BudgetService.decimal_digits(resolved)
        months = sorted((_month_view(month, digits) for month in result.data), key=lambda m: m["month"], reverse=True)
        return {"budget_id": resolved, "months": months, **_provenance(result)}

    @staticmethod
    def get_cache_stats() -> dict[str, Any]:
        delta_cache = DeltaSupport.get_delta_cache()
        return {
            "delta_enabled": delta_cache.is_delta_enabled(),
            "cache": delta_cache.cache_manager.get_stats(),
            "delta": asdict(delta_cache.get_stats()),
            "server_knowledge": delta_cache.knowledge_store.get_stats(),
        }

    @staticmethod
    def clear_cache(
        budget_id: str | None = None,
        resource_type: str | None = None,
        reset_knowledge: bool = False,
    ) -> dict[str, Any]:
        """Invalidate cached snapshots; with ``reset_knowledge`` force a full resync."""
        if resource_type and resource_type not in RESOURCE_TYPES:
            raise ValidationError(
                f"Unknown resource_type '{resource_type}'. Expected one of: {', '.join(RESOURCE_TYPES)}"
            )
        if resource_type and not budget_id:
            raise ValidationError("resource_type requires budget_id")

        delta_cache = DeltaSupport.get_delta_cache()
        if reset_knowledge:
            delta_cache.force_full_refresh(budget_id, resource_type)
        elif budget_id:
            delta_cache.invalidate(budget_id, resource_type)
        else:
            delta_cache.cache_manager.clear()

        logger.info("Cache cleared",
                    budget_id=budget_id,
                    resource_type=resource_type,
                    reset_knowledge=reset_knowledge)

        return {
            "cleared": True,
            "budget_id": budget_id,
            "resource_type": resource_type,
            "knowledge_reset": reset_knowledge,
        }
