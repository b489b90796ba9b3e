"""Utility modules for YNAB MCP Tools."""

from .money import DEFAULT_DECIMAL_DIGITS, format_currency, milliunits_to_currency

__all__ = ["DEFAULT_DECIMAL_DIGITS", "format_currency", "milliunits_to_currency"]
