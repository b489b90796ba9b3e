"""Cache diagnostics and invalidation tools."""

from typing import Annotated, Any

import structlog
from pydantic import Field

from ..services.budget_service import BudgetService
from .app import app
from .responses import error_response

logger = structlog.get_logger("tools.cache")


@app.tool(tags={"cache", "diagnostics", "monitoring"})
async def get_cache_stats() -> dict[str, Any]:
    """Report cache store usage, delta cache counters and tracked server knowledge."""
    try:
        return BudgetService.get_cache_stats()
    except Exception as e:
        logger.error("Failed to get cache stats", error=str(e))
        return error_response("CACHE_STATS_FAILED", e)


@app.tool(tags={"cache", "maintenance"})
async def clear_cache(
    budget_id: Annotated[str | None, Field(
        description="Only clear entries for this budget. Clears everything when omitted",
    )] = None,
    resource_type: Annotated[str | None, Field(
        description="Only clear one resource list (requires budget_id)",
        pattern=r"^(accounts|categories|payees|transactions|scheduled_transactions|months)$",
    )] = None,
    reset_knowledge: Annotated[bool, Field(
        description="Also forget server knowledge so the next fetch is a full resync",
    )] = False,
) -> dict[str, Any]:
    """Clear cached YNAB data.

    Without ``reset_knowledge`` the next request can still ask YNAB for only
    the changes since the last known server knowledge.
    """
    try:
        return BudgetService.clear_cache(
            budget_id=budget_id,
            resource_type=resource_type,
            reset_knowledge=reset_knowledge,
        )
    except Exception as e:
        logger.error("Failed to clear cache", budget_id=budget_id, resource_type=resource_type, error=str(e))
        return error_response("CLEAR_CACHE_FAILED", e)
