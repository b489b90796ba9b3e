"""Pytest configuration and shared fixtures for YNAB MCP Tools tests."""

import os
import tempfile
from pathlib import Path

import pytest

# Point configuration at a throwaway location before any package import
_CONFIG_DIR = Path(tempfile.mkdtemp(prefix="ynab-mcp-test-"))
os.environ["YNAB_MCP_CONFIG"] = str(_CONFIG_DIR / "config.json")
os.environ.pop("YNAB_MCP_ENABLE_DELTA", None)
os.environ.pop("YNAB_DEFAULT_BUDGET", None)

from ynab_mcp_tools.cache import CacheManager, DeltaCache, ServerKnowledgeStore
from ynab_mcp_tools.services.delta_fetcher import DeltaFetcher
from ynab_mcp_tools.services.delta_support import DeltaSupport


class FakeClock:
    """Millisecond clock the cache modules read instead of wall time."""

    def __init__(self, now: float = 1_700_000_000_000.0):
        self.now = now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    """Freeze the cache clocks; advance them explicitly in tests."""
    fake = FakeClock()
    monkeypatch.setattr("ynab_mcp_tools.cache.delta._now_ms", lambda: fake.now)
    monkeypatch.setattr("ynab_mcp_tools.cache.manager._now_ms", lambda: fake.now)
    return fake


@pytest.fixture
def cache_manager() -> CacheManager:
    return CacheManager(max_entries=100)


@pytest.fixture
def knowledge_store() -> ServerKnowledgeStore:
    return ServerKnowledgeStore()


@pytest.fixture
def delta_cache(cache_manager, knowledge_store) -> DeltaCache:
    """Delta cache over real stores with delta requests switched on."""
    return DeltaCache(cache_manager, knowledge_store, delta_enabled=True)


@pytest.fixture(autouse=True)
def reset_delta_support():
    """Keep the process-wide cache context from leaking between tests."""
    DeltaSupport.reset()
    yield
    DeltaSupport.reset()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment overrides the code under test reads."""
    for name in ("YNAB_MCP_ENABLE_DELTA", "YNAB_DEFAULT_BUDGET", "YNAB_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def fake_api():
    """Scripted YNAB API; build clients with ``fake_api.client()``."""
    from fake_ynab import FakeYnabApi

    return FakeYnabApi()


@pytest.fixture
def installed_context(fake_api, delta_cache):
    """Wire the shared cache context to the fake API with delta requests on."""
    client = fake_api.client()
    DeltaSupport.configure(
        delta_cache=delta_cache,
        client=client,
        delta_fetcher=DeltaFetcher(client, delta_cache),
    )
    return delta_cache
