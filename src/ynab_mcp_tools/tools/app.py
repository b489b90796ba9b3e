"""Shared FastMCP app instance for all tools."""

from fastmcp import FastMCP

# Global app instance that all tool modules register against
app = FastMCP("YNAB MCP Tools")

__all__ = ["app"]
