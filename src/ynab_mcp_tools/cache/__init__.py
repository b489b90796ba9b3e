"""Delta-aware caching for YNAB list resources.

Key Components:
- CacheManager: in-memory TTL/LRU store with prefix and budget-scoped deletion
- ServerKnowledgeStore: last server_knowledge seen per cache key
- DeltaCache: decides between delta and full fetches and reconciles snapshots
- merge_*: built-in merge functions for YNAB resources

Usage Example:
    ```python
    cache_manager = CacheManager()
    delta_cache = DeltaCache(cache_manager, ServerKnowledgeStore())

    result = await delta_cache.fetch_with_delta(
        CacheManager.generate_key("accounts", "list", budget_id),
        budget_id,
        fetch_accounts,
        merge_flat_entities,
        ttl=CACHE_TTLS["accounts"],
    )
    ```
"""

from .delta import (
    LARGE_KNOWLEDGE_GAP_THRESHOLD,
    DeltaCache,
    DeltaCacheEntry,
    DeltaCacheStats,
    DeltaFetchResult,
    DeltaLogger,
    FetchResponse,
    MergeOptions,
    StructlogDeltaLogger,
)
from .knowledge import ServerKnowledgeStore
from .manager import CACHE_TTLS, CacheManager
from .merge import merge_categories, merge_flat_entities, merge_months, merge_transactions

__all__ = [
    "CACHE_TTLS",
    "CacheManager",
    "DeltaCache",
    "DeltaCacheEntry",
    "DeltaCacheStats",
    "DeltaFetchResult",
    "DeltaLogger",
    "FetchResponse",
    "LARGE_KNOWLEDGE_GAP_THRESHOLD",
    "MergeOptions",
    "ServerKnowledgeStore",
    "StructlogDeltaLogger",
    "merge_categories",
    "merge_flat_entities",
    "merge_months",
    "merge_transactions",
]
