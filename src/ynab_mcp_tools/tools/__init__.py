"""
Tool modules for YNAB MCP Tools.

Tools are registered with the shared FastMCP app when their module is imported.
"""

# Import all tool modules to register them with the app
from . import budgets, cache
from .app import app

__all__ = [
    "app",
    # Module imports (for tool registration)
    "budgets",
    "cache",
]
