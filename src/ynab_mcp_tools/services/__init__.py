"""Service layer for YNAB MCP Tools."""

from .budget_service import BudgetService
from .delta_fetcher import DeltaFetcher, DeltaFetchOptions
from .delta_support import DeltaSupport

__all__ = ["BudgetService", "DeltaFetchOptions", "DeltaFetcher", "DeltaSupport"]
