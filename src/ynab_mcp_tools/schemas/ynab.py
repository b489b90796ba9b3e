"""Pydantic models for the YNAB resources served through the delta cache.

Every model is frozen so cached snapshots can share instances safely; merges
produce new instances through ``model_copy``. Unknown upstream fields are kept
(``extra="allow"``) so responses pass through without loss. Amounts stay in
milliunits here; conversion happens at the tool boundary.
"""

from pydantic import BaseModel, ConfigDict


class YnabEntity(BaseModel):
    """Base for all YNAB records. ``deleted`` marks a tombstone in delta responses."""

    model_config = ConfigDict(extra="allow", frozen=True)

    deleted: bool | None = None


class CurrencyFormat(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    iso_code: str | None = None
    decimal_digits: int | None = None
    decimal_separator: str | None = None
    symbol_first: bool | None = None
    group_separator: str | None = None
    currency_symbol: str | None = None
    display_symbol: bool | None = None


class BudgetSummary(YnabEntity):
    id: str
    name: str | None = None
    last_modified_on: str | None = None
    first_month: str | None = None
    last_month: str | None = None
    currency_format: CurrencyFormat | None = None


class Account(YnabEntity):
    id: str
    name: str | None = None
    type: str | None = None
    on_budget: bool | None = None
    closed: bool | None = None
    note: str | None = None
    balance: int | None = None
    cleared_balance: int | None = None
    uncleared_balance: int | None = None
    transfer_payee_id: str | None = None


class Category(YnabEntity):
    id: str
    category_group_id: str | None = None
    name: str | None = None
    hidden: bool | None = None
    note: str | None = None
    budgeted: int | None = None
    activity: int | None = None
    balance: int | None = None
    goal_type: str | None = None


class CategoryGroup(YnabEntity):
    id: str
    name: str | None = None
    hidden: bool | None = None
    categories: list[Category] | None = None


class Payee(YnabEntity):
    id: str
    name: str | None = None
    transfer_account_id: str | None = None


class SubTransaction(YnabEntity):
    id: str
    transaction_id: str | None = None
    amount: int | None = None
    memo: str | None = None
    payee_id: str | None = None
    payee_name: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    transfer_account_id: str | None = None


class Transaction(YnabEntity):
    id: str
    date: str | None = None
    amount: int | None = None
    memo: str | None = None
    cleared: str | None = None
    approved: bool | None = None
    flag_color: str | None = None
    account_id: str | None = None
    account_name: str | None = None
    payee_id: str | None = None
    payee_name: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    transfer_account_id: str | None = None
    subtransactions: list[SubTransaction] | None = None


class ScheduledTransaction(YnabEntity):
    id: str
    date_first: str | None = None
    date_next: str | None = None
    frequency: str | None = None
    amount: int | None = None
    memo: str | None = None
    flag_color: str | None = None
    account_id: str | None = None
    payee_id: str | None = None
    category_id: str | None = None


class MonthSummary(YnabEntity):
    """Month summaries are keyed by ``month`` (YYYY-MM-DD); they have no id."""

    month: str
    note: str | None = None
    income: int | None = None
    budgeted: int | None = None
    activity: int | None = None
    to_be_budgeted: int | None = None
    age_of_money: int | None = None
