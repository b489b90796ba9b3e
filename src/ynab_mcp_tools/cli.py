"""Command line interface for YNAB MCP Tools using Typer + Rich."""

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

console = Console()
# stdout carries the MCP protocol while serving
err_console = Console(stderr=True)
app = typer.Typer(
    name="ynab-mcp",
    help="YNAB MCP Tools - delta-cached YNAB access for MCP clients",
    rich_markup_mode="rich",
    add_completion=False,
)
config_app = typer.Typer(help="Show or change configuration")
app.add_typer(config_app, name="config")


def _flatten(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = []
    for key, value in data.items():
        dotted = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            rows.extend(_flatten(value, dotted))
        else:
            rows.append((dotted, value))
    return rows


def _parse_value(raw: str) -> Any:
    """Parse a CLI value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@app.command()
def serve(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    delta: bool | None = typer.Option(None, "--delta/--no-delta", help="Enable or disable delta fetching"),
):
    """Start the YNAB MCP server on stdio."""
    from .config import config

    updates: dict[str, Any] = {}
    if debug:
        updates["logging.debug"] = True
        updates["logging.verbose"] = True  # Debug implies verbose
    elif verbose:
        updates["logging.verbose"] = True
    if delta is not None:
        updates["delta.enabled"] = delta

    if updates:
        try:
            config.update_config(**updates)
        except Exception as e:
            err_console.print(f"[yellow]Warning: Could not update config: {e}[/yellow]")

    from .server import main as server_main

    server_main()


@config_app.command("show")
def config_show():
    """Show the effective configuration."""
    from .config import config

    table = Table(title=f"Configuration ({config.config_path})")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    for key, value in _flatten(config.config):
        if key == "ynab.access_token" and value:
            value = "********"
        table.add_row(key, json.dumps(value))

    table.add_row("delta.effective", json.dumps(config.is_delta_enabled()))
    console.print(table)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Dotted config key, e.g. delta.enabled"),
    value: str = typer.Argument(..., help="New value, parsed as JSON when possible"),
):
    """Set a configuration value and save it."""
    from .config import config

    parsed = _parse_value(value)
    try:
        config.update_config(**{key: parsed})
    except Exception as e:
        console.print(f"[red]Could not update config: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]{key}[/green] = {json.dumps(parsed)}")
    console.print(f"Saved to {config.config_path}")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
