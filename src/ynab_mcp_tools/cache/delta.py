"""Delta-aware caching for YNAB list resources.

``DeltaCache`` pairs cached snapshots with the server_knowledge recorded in a
``ServerKnowledgeStore``. When a snapshot and its knowledge are both known it
asks the fetcher only for changes since that knowledge and folds them into the
snapshot with a merge function. Large knowledge jumps, forced refreshes and
first fetches fall back to full snapshots.

Each fetch is a straight pipeline (read cache, await fetcher, maybe await a
second full fetch, merge, write cache, write knowledge) with no locking.
Concurrent calls for the same key both fetch and the later write wins.
"""

import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

import structlog

from ..errors import ConfigurationError
from .knowledge import ServerKnowledgeStore
from .manager import CacheManager

LARGE_KNOWLEDGE_GAP_THRESHOLD = 100


class Deletable(Protocol):
    """Anything the delta cache can hold: it only needs a tombstone flag."""

    @property
    def deleted(self) -> bool | None: ...


E = TypeVar("E", bound=Deletable)


@dataclass
class MergeOptions:
    preserve_deleted: bool = False
    # Built-in mergers match on identity fields and ignore this.
    equality_fn: Callable[[Any, Any], bool] | None = None


MergeFn = Callable[[list[E], list[E], MergeOptions | None], list[E]]


@dataclass
class FetchResponse(Generic[E]):
    """What a fetcher returns: a batch of entities and the collection's knowledge."""

    data: list[E]
    server_knowledge: int


DeltaFetcherFn = Callable[[int | None], Awaitable[FetchResponse[E]]]


@dataclass
class DeltaCacheEntry(Generic[E]):
    snapshot: list[E]
    server_knowledge: int
    timestamp: float
    ttl: float
    stale_while_revalidate: float | None = None

    def is_stale(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


@dataclass
class DeltaFetchResult(Generic[E]):
    data: list[E]
    was_cached: bool
    used_delta: bool
    server_knowledge: int


@dataclass
class DeltaCacheStats:
    delta_hits: int = 0
    delta_misses: int = 0
    merge_operations: int = 0
    knowledge_gap_events: int = 0


class DeltaLogger(Protocol):
    def info(self, message: str, meta: dict[str, Any] | None = None) -> None: ...

    def warn(self, message: str, meta: dict[str, Any] | None = None) -> None: ...

    def error(self, message: str, meta: dict[str, Any] | None = None) -> None: ...


class StructlogDeltaLogger:
    """Forwards delta cache events to structlog under the ``delta-cache`` component."""

    def __init__(self, logger: Any = None):
        self._logger = logger or structlog.get_logger("cache.delta").bind(component="delta-cache")

    def info(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._logger.info(message, **(meta or {}))

    def warn(self, message: str, meta: dict[str, Any] | None = None) -> None:
        self._logger.warning(message, **{**(meta or {}), "severity": "warn"})

    def error(self, message: str, meta: dict[str, Any] | None = None) -> None:
        parameters = dict(meta or {})
        error_field = parameters.pop("error", None)
        error_detail = error_field if isinstance(error_field, str) else message
        self._logger.error(message, error=error_detail, **parameters)


def _now_ms() -> float:
    return time.time() * 1000


def _env_delta_enabled() -> bool:
    # Imported lazily so the cache package has no import-time config dependency
    from ..config import config

    return config.is_delta_enabled()


class DeltaCache:
    """Coordinates cache entries with server knowledge to issue delta requests."""

    def __init__(
        self,
        cache_manager: CacheManager,
        knowledge_store: ServerKnowledgeStore,
        logger: DeltaLogger | None = None,
        delta_enabled: bool | Callable[[], bool] | None = None,
        knowledge_gap_threshold: int = LARGE_KNOWLEDGE_GAP_THRESHOLD,
    ):
        """Create a delta cache.

        Args:
            cache_manager: Store holding ``DeltaCacheEntry`` objects per key
            knowledge_store: Store holding the last server_knowledge per key
            logger: Sink for info/warn/error events; defaults to structlog
            delta_enabled: Feature gate. A bool fixes it, a callable is evaluated
                on every fetch, None reads the process configuration each call
            knowledge_gap_threshold: Knowledge jumps larger than this trigger a
                full refresh instead of a merge
        """
        self.cache_manager = cache_manager
        self.knowledge_store = knowledge_store
        self.logger = logger or StructlogDeltaLogger()
        self.knowledge_gap_threshold = knowledge_gap_threshold
        self._delta_enabled = delta_enabled
        self._stats = DeltaCacheStats()

    async def fetch_with_delta(
        self,
        cache_key: str,
        budget_id: str,
        fetcher: DeltaFetcherFn[E],
        merger: MergeFn[E],
        *,
        ttl: float | None = None,
        force_full_refresh: bool = False,
        merge_options: MergeOptions | None = None,
        stale_while_revalidate: float | None = None,
    ) -> DeltaFetchResult[E]:
        """Fetch a collection, merging a delta into the cached snapshot when possible.

        Args:
            cache_key: Key of the cached snapshot and its knowledge record
            budget_id: Budget the collection belongs to (used in log events)
            fetcher: ``async (last_knowledge | None) -> FetchResponse``
            merger: ``(snapshot, delta, merge_options) -> snapshot``
            ttl: Required finite TTL in milliseconds for this resource
            force_full_refresh: Skip delta requests. A still-fresh cache entry
                is returned as-is.
            merge_options: Passed through to ``merger``
            stale_while_revalidate: Optional window in milliseconds stored with
                the entry and handed to the cache store

        Raises:
            ConfigurationError: If ``ttl`` is missing or not finite
        """
        effective_ttl = self._assert_finite_ttl("fetch_with_delta", cache_key, ttl)

        if not self.is_delta_enabled():
            return await self.fetch_without_delta(
                cache_key,
                budget_id,
                fetcher,
                ttl=effective_ttl,
                force_full_refresh=force_full_refresh,
                stale_while_revalidate=stale_while_revalidate,
            )

        # Read even when forcing: force_full_refresh only disables delta merging
        cached_entry: DeltaCacheEntry[E] | None = self.cache_manager.get(cache_key)

        if force_full_refresh and cached_entry is not None and not cached_entry.is_stale(_now_ms()):
            return DeltaFetchResult(
                data=cached_entry.snapshot,
                was_cached=True,
                used_delta=False,
                server_knowledge=cached_entry.server_knowledge,
            )

        last_knowledge = None if force_full_refresh else self.knowledge_store.get(cache_key)
        can_use_delta = (
            not force_full_refresh and cached_entry is not None and last_knowledge is not None
        )
        requested_knowledge = last_knowledge if can_use_delta else None

        response = await fetcher(requested_knowledge)
        knowledge_gap = (
            response.server_knowledge - requested_knowledge if requested_knowledge is not None else 0
        )

        forced_by_gap = False
        if knowledge_gap > self.knowledge_gap_threshold:
            self.logger.warn("delta-cache.knowledge-gap", {
                "budget_id": budget_id,
                "cache_key": cache_key,
                "last_knowledge": requested_knowledge,
                "server_knowledge": response.server_knowledge,
                "gap": knowledge_gap,
                "threshold": self.knowledge_gap_threshold,
                "action": "full-refresh",
                "recommendation": "Consider forcing a full refresh to resync cache.",
            })
            forced_by_gap = True
            self._stats.knowledge_gap_events += 1
            response = await fetcher(None)

        received_delta = (
            not forced_by_gap
            and requested_knowledge is not None
            and response.server_knowledge > requested_knowledge
        )

        used_delta = False
        if received_delta and cached_entry is not None:
            self._stats.merge_operations += 1
            final_snapshot = merger(cached_entry.snapshot, response.data, merge_options)
            used_delta = True
        elif cached_entry is not None and requested_knowledge is not None and not forced_by_gap:
            # Nothing changed upstream
            final_snapshot = cached_entry.snapshot
        else:
            final_snapshot = self._filter_deleted(response.data)

        self._store(cache_key, final_snapshot, response.server_knowledge, effective_ttl, stale_while_revalidate)

        if can_use_delta:
            self._stats.delta_hits += 1
        else:
            self._stats.delta_misses += 1

        return DeltaFetchResult(
            data=final_snapshot,
            was_cached=cached_entry is not None,
            used_delta=used_delta,
            server_knowledge=response.server_knowledge,
        )

    async def fetch_without_delta(
        self,
        cache_key: str,
        budget_id: str,
        fetcher: DeltaFetcherFn[E],
        *,
        ttl: float | None = None,
        force_full_refresh: bool = False,
        stale_while_revalidate: float | None = None,
    ) -> DeltaFetchResult[E]:
        """Plain read-through caching with full snapshots only."""
        effective_ttl = self._assert_finite_ttl("fetch_without_delta", cache_key, ttl)

        cached_entry: DeltaCacheEntry[E] | None = self.cache_manager.get(cache_key)

        if cached_entry is not None:
            if not cached_entry.is_stale(_now_ms()) or not force_full_refresh:
                return DeltaFetchResult(
                    data=cached_entry.snapshot,
                    was_cached=True,
                    used_delta=False,
                    server_knowledge=cached_entry.server_knowledge,
                )

        response = await fetcher(None)
        cleaned = self._filter_deleted(response.data)
        self._store(cache_key, cleaned, response.server_knowledge, effective_ttl, stale_while_revalidate)

        return DeltaFetchResult(
            data=cleaned,
            was_cached=False,
            used_delta=False,
            server_knowledge=response.server_knowledge,
        )

    def invalidate(self, budget_id: str, resource_type: str | None = None) -> None:
        """Drop cached snapshots for a budget, optionally one resource type.

        Server knowledge is kept so the next fetch can still ask for a delta.
        """
        if not budget_id:
            return

        if resource_type:
            self.cache_manager.delete_by_prefix(f"{resource_type}:list:{budget_id}")
        else:
            self.cache_manager.delete_by_budget_id(budget_id)

    def force_full_refresh(self, budget_id: str | None = None, resource_type: str | None = None) -> None:
        """Drop cached snapshots and the matching knowledge records."""
        if budget_id:
            self.invalidate(budget_id, resource_type)
        else:
            self.cache_manager.clear()

        if resource_type and budget_id:
            self.knowledge_store.reset(f"{resource_type}:list:{budget_id}")
        elif budget_id:
            self.knowledge_store.reset_by_budget_id(budget_id)
        else:
            self.knowledge_store.reset()

        self.logger.info("delta-cache.force-full-refresh", {
            "budget_id": budget_id,
            "resource_type": resource_type,
        })

    def get_stats(self) -> DeltaCacheStats:
        return DeltaCacheStats(
            delta_hits=self._stats.delta_hits,
            delta_misses=self._stats.delta_misses,
            merge_operations=self._stats.merge_operations,
            knowledge_gap_events=self._stats.knowledge_gap_events,
        )

    def is_delta_enabled(self) -> bool:
        if self._delta_enabled is None:
            return _env_delta_enabled()
        if callable(self._delta_enabled):
            return bool(self._delta_enabled())
        return bool(self._delta_enabled)

    def _store(
        self,
        cache_key: str,
        snapshot: list[E],
        server_knowledge: int,
        ttl: float,
        stale_while_revalidate: float | None,
    ) -> None:
        entry = DeltaCacheEntry(
            snapshot=snapshot,
            server_knowledge=server_knowledge,
            timestamp=_now_ms(),
            ttl=ttl,
            stale_while_revalidate=stale_while_revalidate,
        )
        cache_options: dict[str, float] = {"ttl": ttl}
        if stale_while_revalidate is not None:
            cache_options["stale_while_revalidate"] = stale_while_revalidate

        self.cache_manager.set(cache_key, entry, **cache_options)
        self.knowledge_store.update(cache_key, server_knowledge)

    @staticmethod
    def _filter_deleted(items: list[E]) -> list[E]:
        return [item for item in items if not item.deleted]

    @staticmethod
    def _assert_finite_ttl(method_name: str, cache_key: str, ttl: Any) -> float:
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or not math.isfinite(ttl):
            raise ConfigurationError(
                f'DeltaCache.{method_name} requires a finite ttl for cache key "{cache_key}". '
                f"Received: {ttl!r}."
            )
        return ttl
