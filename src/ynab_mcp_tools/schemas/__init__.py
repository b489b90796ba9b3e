"""Pydantic models for the YNAB entities returned by the API."""

from .ynab import (
    Account,
    BudgetSummary,
    Category,
    CategoryGroup,
    CurrencyFormat,
    MonthSummary,
    Payee,
    ScheduledTransaction,
    SubTransaction,
    Transaction,
    YnabEntity,
)

__all__ = [
    "Account",
    "BudgetSummary",
    "Category",
    "CategoryGroup",
    "CurrencyFormat",
    "MonthSummary",
    "Payee",
    "ScheduledTransaction",
    "SubTransaction",
    "Transaction",
    "YnabEntity",
]
