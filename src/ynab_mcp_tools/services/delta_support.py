"""Process-wide delta cache context shared by all tools.

The cache store, knowledge store, delta cache and fetcher are created lazily
on first use and live for the process lifetime. Tests (or an embedding
application) can swap any of them with ``configure``.
"""

import structlog

from ..cache import CacheManager, DeltaCache, ServerKnowledgeStore
from ..config import config
from ..errors import ConfigurationError
from ..ynab_client import YnabClient
from .delta_fetcher import DeltaFetcher

logger = structlog.get_logger("services.delta_support")


class DeltaSupport:
    """Holder for the shared delta cache objects."""

    _cache_manager: CacheManager | None = None
    _knowledge_store: ServerKnowledgeStore | None = None
    _delta_cache: DeltaCache | None = None
    _client: YnabClient | None = None
    _delta_fetcher: DeltaFetcher | None = None

    @classmethod
    def configure(
        cls,
        *,
        cache_manager: CacheManager | None = None,
        knowledge_store: ServerKnowledgeStore | None = None,
        delta_cache: DeltaCache | None = None,
        client: YnabClient | None = None,
        delta_fetcher: DeltaFetcher | None = None,
    ) -> None:
        """Install specific instances; anything left None is built on demand."""
        cls._cache_manager = cache_manager
        cls._knowledge_store = knowledge_store
        cls._delta_cache = delta_cache
        cls._client = client
        cls._delta_fetcher = delta_fetcher

    @classmethod
    def reset(cls) -> None:
        """Drop every instance. Call ``aclose`` first if the client is still open."""
        cls.configure()

    @classmethod
    async def aclose(cls) -> None:
        """Close the YNAB client; the next request builds a new one."""
        client = cls._client
        cls._client = None
        cls._delta_fetcher = None
        if client is not None:
            await client.aclose()
            logger.info("YNAB client closed")

    @classmethod
    def get_cache_manager(cls) -> CacheManager:
        if cls._delta_cache is not None:
            return cls._delta_cache.cache_manager
        if cls._cache_manager is None:
            cls._cache_manager = CacheManager(max_entries=config.get("cache.max_entries", 1000))
        return cls._cache_manager

    @classmethod
    def get_knowledge_store(cls) -> ServerKnowledgeStore:
        if cls._delta_cache is not None:
            return cls._delta_cache.knowledge_store
        if cls._knowledge_store is None:
            cls._knowledge_store = ServerKnowledgeStore()
        return cls._knowledge_store

    @classmethod
    def get_delta_cache(cls) -> DeltaCache:
        if cls._delta_cache is None:
            cls._delta_cache = DeltaCache(
                cls.get_cache_manager(),
                cls.get_knowledge_store(),
                delta_enabled=config.is_delta_enabled,
                knowledge_gap_threshold=config.get("delta.knowledge_gap_threshold", 100),
            )
        return cls._delta_cache

    @classmethod
    def get_client(cls) -> YnabClient:
        if cls._client is None:
            token = config.get_access_token()
            if not token:
                raise ConfigurationError("YNAB_ACCESS_TOKEN environment variable is required")
            cls._client = YnabClient(
                access_token=token,
                base_url=config.get("ynab.base_url"),
                timeout=config.get("ynab.timeout_seconds", 30.0),
            )
            logger.info("YNAB client created", base_url=cls._client.base_url)
        return cls._client

    @classmethod
    def get_delta_fetcher(cls) -> DeltaFetcher:
        if cls._delta_fetcher is None:
            cls._delta_fetcher = DeltaFetcher(cls.get_client(), cls.get_delta_cache())
        return cls._delta_fetcher
