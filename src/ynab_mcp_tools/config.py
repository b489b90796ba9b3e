"""Configuration management for YNAB MCP Tools."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

# Default configuration
DEFAULT_CONFIG = {
    "logging": {
        "level": "INFO",
        "verbose": False,
        "debug": False,
        "startup_logging": True,
        "terminal_safe": True,  # JSON logging keeps stdio clean for MCP clients
        "mcp_mode": "auto"  # "auto", "force", "disable"
    },
    "ynab": {
        "base_url": "https://api.ynab.com/v1",
        "timeout_seconds": 30.0,
        "default_budget_id": None
    },
    "delta": {
        "enabled": False,
        "knowledge_gap_threshold": 100
    },
    "cache": {
        "max_entries": 1000
    }
}

TRUTHY_VALUES = {"1", "true", "yes", "on"}


def _default_config() -> dict[str, Any]:
    return json.loads(json.dumps(DEFAULT_CONFIG))


class YnabMcpConfig:
    """Configuration manager for YNAB MCP Tools."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to $YNAB_MCP_CONFIG or
                ~/.ynab-mcp/config.json
        """
        if config_path is None:
            env_path = os.environ.get("YNAB_MCP_CONFIG")
            config_path = Path(env_path) if env_path else Path.home() / ".ynab-mcp" / "config.json"

        self.config_path = config_path
        self.config = self._load_config()
        self._configure_logging()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, falling back to defaults."""
        config = _default_config()
        if not self.config_path.exists():
            return config

        try:
            with open(self.config_path, "r") as f:
                user_config = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            print(f"Warning: Invalid config file {self.config_path}, using defaults: {e}", file=sys.stderr)
            return config

        self._deep_merge(config, user_config)
        return config

    def _deep_merge(self, target: dict[str, Any], source: dict[str, Any]) -> None:
        """Deep merge source into target dictionary."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._deep_merge(target[key], value)
            else:
                target[key] = value

    def _save_config(self, config: dict[str, Any]) -> None:
        """Save configuration to file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                json.dump(config, f, indent=2)
        except OSError as e:
            print(f"Warning: Could not save config to {self.config_path}: {e}", file=sys.stderr)

    def _configure_logging(self) -> None:
        """Configure structlog based on current config."""
        log_level = self.config["logging"]["level"]
        verbose = self.config["logging"]["verbose"]
        debug = self.config["logging"]["debug"]
        terminal_safe = self.config["logging"]["terminal_safe"]
        mcp_mode = self.config["logging"]["mcp_mode"]

        if debug:
            level = logging.DEBUG
        elif verbose:
            level = logging.INFO
        else:
            level = getattr(logging, str(log_level).upper(), logging.INFO)

        is_mcp_environment = self._detect_mcp_environment(mcp_mode)

        if terminal_safe or is_mcp_environment:
            # stdout belongs to the MCP transport; no ANSI codes on stderr either
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer() if debug or verbose else structlog.processors.JSONRenderer()

        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                renderer,
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
            cache_logger_on_first_use=True,
        )

    def _detect_mcp_environment(self, mcp_mode: str) -> bool:
        """Detect if we're running under an MCP client."""
        if mcp_mode == "force":
            return True
        elif mcp_mode == "disable":
            return False
        elif mcp_mode == "auto":
            indicators = [
                "CLAUDE_CODE" in os.environ,
                "MCP_SERVER" in os.environ,
                os.environ.get("_", "").endswith("claude"),
                "claude" in os.environ.get("TERM_PROGRAM", "").lower(),
            ]
            return any(indicators)
        return False

    def update_config(self, **kwargs) -> None:
        """Update configuration and save to file.

        Args:
            **kwargs: Configuration updates. Nested keys use dots, so pass them
                through a dict: ``update_config(**{"delta.enabled": True})``
        """
        for key, value in kwargs.items():
            if "." in key:
                keys = key.split(".")
                current = self.config
                for k in keys[:-1]:
                    if k not in current:
                        current[k] = {}
                    current = current[k]
                current[keys[-1]] = value
            else:
                self.config[key] = value

        self._save_config(self.config)
        self._configure_logging()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "delta.enabled")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        current = self.config

        for k in keys:
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default

        return current

    def is_delta_enabled(self) -> bool:
        """Whether delta requests are enabled.

        ``YNAB_MCP_ENABLE_DELTA`` wins over the config file so the feature can
        be toggled per process. Read on every call.
        """
        env_value = os.environ.get("YNAB_MCP_ENABLE_DELTA")
        if env_value is not None:
            return env_value.strip().lower() in TRUTHY_VALUES
        return bool(self.get("delta.enabled", False))

    def get_access_token(self) -> str | None:
        return os.environ.get("YNAB_ACCESS_TOKEN") or self.get("ynab.access_token")


# Global configuration instance
config = YnabMcpConfig()
