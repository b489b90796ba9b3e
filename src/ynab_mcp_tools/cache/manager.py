"""In-memory cache store with TTL, stale-while-revalidate and LRU eviction.

All durations are milliseconds. Keys are plain strings built with
``CacheManager.generate_key`` (``accounts:list:<budget_id>`` and so on), which
is what the prefix and budget-scoped deletions rely on.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger("cache.manager")

MINUTE_MS = 60 * 1000

# Per-resource TTLs in milliseconds
CACHE_TTLS = {
    "budgets": 10 * MINUTE_MS,
    "accounts": 5 * MINUTE_MS,
    "categories": 5 * MINUTE_MS,
    "payees": 10 * MINUTE_MS,
    "transactions": 2 * MINUTE_MS,
    "scheduled_transactions": 5 * MINUTE_MS,
    "months": 5 * MINUTE_MS,
    "short": 1 * MINUTE_MS,
}

DEFAULT_TTL_MS = CACHE_TTLS["accounts"]


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class _StoredValue:
    value: Any
    created_at: float
    ttl: float
    stale_while_revalidate: float | None = None

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_fresh(self, now: float) -> bool:
        return self.age(now) <= self.ttl

    def is_servable(self, now: float) -> bool:
        if self.is_fresh(now):
            return True
        if self.stale_while_revalidate is None:
            return False
        return self.age(now) <= self.ttl + self.stale_while_revalidate


class CacheManager:
    """Process-local cache store shared by the tools and the delta cache."""

    def __init__(self, max_entries: int = 1000, default_ttl: float = DEFAULT_TTL_MS):
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._entries: OrderedDict[str, _StoredValue] = OrderedDict()

        self.stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "stale_hits": 0,
        }

    @staticmethod
    def generate_key(*parts: Any) -> str:
        """Build a cache key such as ``transactions:list:budget-1:all:all``."""
        return ":".join(str(part) for part in parts if part is not None)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        stored = self._entries.get(key)
        if stored is None:
            self.stats["misses"] += 1
            return None

        now = _now_ms()
        if not stored.is_servable(now):
            del self._entries[key]
            self.stats["misses"] += 1
            logger.debug("Cache entry expired", key=key, age_ms=round(stored.age(now)))
            return None

        if not stored.is_fresh(now):
            self.stats["stale_hits"] += 1
            logger.debug("Serving stale cache entry", key=key, age_ms=round(stored.age(now)))

        self._entries.move_to_end(key)
        self.stats["hits"] += 1
        return stored.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        stale_while_revalidate: float | None = None,
    ) -> None:
        """Store a value, replacing any previous entry for the key."""
        self._entries[key] = _StoredValue(
            value=value,
            created_at=_now_ms(),
            ttl=self.default_ttl if ttl is None else ttl,
            stale_while_revalidate=stale_while_revalidate,
        )
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            self.stats["evictions"] += 1
            logger.debug("Cache entry evicted", key=evicted_key)

    def has(self, key: str) -> bool:
        stored = self._entries.get(key)
        return stored is not None and stored.is_servable(_now_ms())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""
        matching = [key for key in self._entries if key.startswith(prefix)]
        for key in matching:
            del self._entries[key]

        logger.debug("Cache entries deleted by prefix", prefix=prefix, removed=len(matching))
        return len(matching)

    def delete_by_budget_id(self, budget_id: str) -> int:
        """Delete every entry scoped to a budget (keys containing ``:<budget_id>``)."""
        needle = f":{budget_id}"
        matching = [key for key in self._entries if needle in key]
        for key in matching:
            del self._entries[key]

        logger.debug("Cache entries deleted for budget", budget_id=budget_id, removed=len(matching))
        return len(matching)

    def clear(self) -> None:
        removed = len(self._entries)
        self._entries.clear()
        logger.info("Cache cleared", removed=removed)

    def cleanup(self) -> int:
        """Purge entries that are past their TTL and stale window."""
        now = _now_ms()
        expired = [key for key, stored in self._entries.items() if not stored.is_servable(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def get_stats(self) -> dict[str, Any]:
        total_requests = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hit_rate_percent": round(hit_rate, 2),
            **self.stats,
        }
