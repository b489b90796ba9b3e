"""Exception hierarchy for YNAB MCP Tools."""


class YnabMcpError(Exception):
    """Base error for everything raised by this package."""


class ConfigurationError(YnabMcpError):
    """Raised when a caller supplies an unusable configuration value."""


class ValidationError(YnabMcpError):
    """Raised when a value fails validation before any state is mutated."""


class YnabApiError(YnabMcpError):
    """Upstream YNAB API error with status code and message."""

    def __init__(self, status_code: int, message: str, detail: str | None = None):
        self.status_code = status_code
        self.message = message
        self.detail = detail
        super().__init__(f"{status_code}: {message}")
