"""YNAB MCP server entry point."""

import asyncio
import sys
import traceback
import warnings

import structlog
import uvloop

# Suppress deprecation warning when running as MCP server to avoid stderr noise
with warnings.catch_warnings():
    warnings.filterwarnings("ignore", category=DeprecationWarning, module="uvloop")
    uvloop.install()

# Import configuration system first to set up logging
from .config import config

# Importing the tools package registers every tool with the shared app
from .tools import app
from .services.delta_support import DeltaSupport

logger = structlog.get_logger("server")


async def serve() -> None:
    """Run the MCP app, closing the YNAB HTTP client once it stops."""
    try:
        await app.run_async()
    finally:
        await DeltaSupport.aclose()


def main():
    """Main entry point for the YNAB MCP server."""
    try:
        if config.get("logging.startup_logging", True):
            logger.info("Starting YNAB MCP Tools server",
                        config_path=str(config.config_path),
                        log_level=config.get("logging.level"),
                        delta_enabled=config.is_delta_enabled(),
                        has_token=bool(config.get_access_token()))

        if not config.get_access_token():
            logger.warning("YNAB_ACCESS_TOKEN is not set; YNAB tools will return configuration errors")

        asyncio.run(serve())

    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
        sys.exit(0)

    except Exception as e:
        logger.error("Failed to start YNAB MCP server",
                     error_type=type(e).__name__,
                     error=str(e))
        if config.get("logging.verbose") or config.get("logging.debug"):
            for line in traceback.format_exc().splitlines():
                logger.error("  %s", line)
        sys.exit(1)


if __name__ == "__main__":
    main()
