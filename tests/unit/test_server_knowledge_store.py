"""Unit tests for ServerKnowledgeStore."""

import pytest

from ynab_mcp_tools.cache import ServerKnowledgeStore
from ynab_mcp_tools.errors import ValidationError


class TestServerKnowledgeStore:

    def test_unknown_key_returns_none(self, knowledge_store):
        assert knowledge_store.get("accounts:list:b1") is None

    def test_update_overwrites(self, knowledge_store):
        knowledge_store.update("accounts:list:b1", 10)
        knowledge_store.update("accounts:list:b1", 4)

        assert knowledge_store.get("accounts:list:b1") == 4

    def test_zero_is_accepted(self, knowledge_store):
        knowledge_store.update("k", 0)
        assert knowledge_store.get("k") == 0

    def test_negative_knowledge_rejected(self, knowledge_store):
        with pytest.raises(ValidationError, match="non-negative"):
            knowledge_store.update("k", -1)

        assert knowledge_store.get("k") is None

    def test_reset_with_pattern_matches_substring(self, knowledge_store):
        knowledge_store.update("accounts:list:b1", 1)
        knowledge_store.update("payees:list:b1", 2)
        knowledge_store.update("accounts:list:b2", 3)

        knowledge_store.reset("accounts:")

        assert knowledge_store.get_stats()["entries"] == {"payees:list:b1": 2}

    def test_reset_pattern_is_literal(self, knowledge_store):
        knowledge_store.update("accounts:list:b1", 1)

        knowledge_store.reset("accounts.*")

        assert knowledge_store.get("accounts:list:b1") == 1

    def test_reset_all(self, knowledge_store):
        knowledge_store.update("a", 1)
        knowledge_store.update("b", 2)

        knowledge_store.reset()

        assert knowledge_store.get_stats() == {"entry_count": 0, "entries": {}}

    def test_reset_by_budget_id(self, knowledge_store):
        knowledge_store.update("accounts:list:b1", 1)
        knowledge_store.update("transactions:account:b1:acct:all", 2)
        knowledge_store.update("accounts:list:b2", 3)

        knowledge_store.reset_by_budget_id("b1")

        assert list(knowledge_store.get_stats()["entries"]) == ["accounts:list:b2"]

    def test_stats_are_a_copy(self):
        store = ServerKnowledgeStore()
        store.update("a", 1)

        stats = store.get_stats()
        stats["entries"]["a"] = 99

        assert store.get("a") == 1
