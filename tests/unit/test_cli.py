"""Tests for the Typer CLI."""

import pytest
from typer.testing import CliRunner

from ynab_mcp_tools.cli import app
from ynab_mcp_tools.config import config

runner = CliRunner()


@pytest.fixture
def restore_config(monkeypatch):
    """Undo in-memory config changes made through the CLI."""
    monkeypatch.setitem(config.config, "delta", dict(config.config["delta"]))
    monkeypatch.setitem(config.config, "cache", dict(config.config["cache"]))


class TestConfigCommands:

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "delta.enabled" in result.stdout
        assert "delta.effective" in result.stdout

    def test_config_set_parses_json(self, restore_config):
        result = runner.invoke(app, ["config", "set", "delta.enabled", "true"])

        assert result.exit_code == 0
        assert config.get("delta.enabled") is True

    def test_config_set_keeps_plain_strings(self, restore_config):
        result = runner.invoke(app, ["config", "set", "cache.label", "nightly"])

        assert result.exit_code == 0
        assert config.get("cache.label") == "nightly"
