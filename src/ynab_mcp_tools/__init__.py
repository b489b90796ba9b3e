"""YNAB MCP Tools - delta-aware YNAB access for AI assistants."""

__version__ = "0.3.0"
