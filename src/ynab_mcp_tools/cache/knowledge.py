"""In-memory server knowledge tracking for delta requests."""

from typing import Any

import structlog

from ..errors import ValidationError

logger = structlog.get_logger("cache.knowledge")


class ServerKnowledgeStore:
    """Maps cache keys to the last server_knowledge seen for that collection.

    Pure bookkeeping with no locking. Records live for the process lifetime and
    only disappear through ``reset``/``reset_by_budget_id``.
    """

    def __init__(self):
        self._knowledge: dict[str, int] = {}

    def get(self, cache_key: str) -> int | None:
        return self._knowledge.get(cache_key)

    def update(self, cache_key: str, server_knowledge: int) -> None:
        """Record the latest knowledge for a key. Last write wins."""
        if server_knowledge < 0:
            raise ValidationError(
                f"server_knowledge must be non-negative, got: {server_knowledge}"
            )
        self._knowledge[cache_key] = server_knowledge

    def reset(self, pattern: str | None = None) -> None:
        """Drop knowledge records.

        Args:
            pattern: Plain substring; every key containing it is removed.
                Without a pattern the whole store is cleared.
        """
        if pattern is None:
            removed = len(self._knowledge)
            self._knowledge.clear()
        else:
            matching = [key for key in self._knowledge if pattern in key]
            for key in matching:
                del self._knowledge[key]
            removed = len(matching)

        logger.debug("Server knowledge reset", pattern=pattern, removed=removed)

    def reset_by_budget_id(self, budget_id: str) -> None:
        self.reset(f":{budget_id}")

    def get_stats(self) -> dict[str, Any]:
        return {
            "entry_count": len(self._knowledge),
            "entries": dict(self._knowledge),
        }
