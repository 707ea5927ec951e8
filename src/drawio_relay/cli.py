"""
Command-line interface for the relay.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx
import yaml
from rich.console import Console
from rich.table import Table

from drawio_relay.config import RelayConfig, config_search_paths, find_config_file, load_config
from drawio_relay.controller import create_mcp_server
from drawio_relay.logging import setup_logging
from drawio_relay.models import ConfigError
from drawio_relay.relay import Relay

# stdout belongs to the MCP stdio protocol while serving
console = Console(stderr=True)
out = Console()


def _add_server_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", help="Config file (YAML)")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("-p", "--port", type=int, help="Listening port")
    parser.add_argument("-t", "--timeout", type=float, help="Command timeout in seconds")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Relay drawing commands from an AI agent to a running Draw.io editor",
        prog="drawio-relay",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser(
        "serve", help="Run the relay and the MCP controller over stdio"
    )
    _add_server_options(serve_parser)

    relay_parser = subparsers.add_parser("relay", help="Run only the HTTP/websocket relay")
    _add_server_options(relay_parser)

    health_parser = subparsers.add_parser("health", help="Query a running relay")
    health_parser.add_argument(
        "--url",
        default="http://localhost:3000",
        help="Relay base URL",
    )
    health_parser.add_argument("--json", action="store_true", help="Output as JSON")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_init_parser = config_subparsers.add_parser("init", help="Initialize a new config file")
    config_init_parser.add_argument(
        "-o",
        "--output",
        default="drawio-relay.yaml",
        help="Output file path",
    )
    config_subparsers.add_parser("path", help="Show config file paths")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in ("serve", "relay"):
        try:
            config = _resolve_config(args)
        except (ConfigError, OSError, yaml.YAMLError) as e:
            console.print(f"[red]Invalid configuration:[/red] {e}")
            sys.exit(2)
        setup_logging("DEBUG" if args.verbose else config.log_level, file=config.log_file)
        try:
            if args.command == "serve":
                asyncio.run(cmd_serve(config))
            else:
                asyncio.run(cmd_relay(config))
        except KeyboardInterrupt:
            pass
    elif args.command == "health":
        setup_logging("DEBUG" if args.verbose else "WARNING")
        cmd_health(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def _resolve_config(args: argparse.Namespace) -> RelayConfig:
    """Config file and environment, then command-line overrides."""
    config = load_config(Path(args.config) if args.config else None)
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.timeout is not None:
        config.command_timeout = args.timeout
    # Re-run validation on the overridden values
    return RelayConfig.from_dict(config.to_dict())


async def cmd_serve(config: RelayConfig) -> None:
    """Serve MCP over stdio until the client goes away."""
    relay = Relay(config)
    mcp = create_mcp_server(relay.dispatcher, name=config.server_name)
    port = await relay.start()
    console.print(f"[green]Relay ready[/green] on {config.host}:{port}, MCP on stdio")
    try:
        await mcp.run_stdio_async()
    finally:
        await relay.stop()


async def cmd_relay(config: RelayConfig) -> None:
    """Serve only the relay endpoints."""
    relay = Relay(config)
    await relay.serve_forever()


def fetch_health(url: str, timeout: float = 5.0) -> dict:
    response = httpx.get(f"{url.rstrip('/')}/health", timeout=timeout)
    response.raise_for_status()
    return response.json()


def cmd_health(args: argparse.Namespace) -> None:
    """Print the health of a running relay."""
    try:
        data = fetch_health(args.url)
    except httpx.HTTPError as e:
        console.print(f"[red]Relay unreachable at {args.url}:[/red] {e}")
        sys.exit(1)

    if args.json:
        out.print_json(json.dumps(data))
        return

    table = Table(title=f"Relay {args.url}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", str(data.get("status")))
    connected = data.get("wsConnected")
    table.add_row("Editor connected", "[green]yes[/green]" if connected else "[red]no[/red]")
    table.add_row("Pending commands", str(data.get("pendingCommands", 0)))
    out.print(table)


def cmd_config(args: argparse.Namespace) -> None:
    """Configuration management commands."""
    if args.config_command == "show":
        _config_show()
    elif args.config_command == "init":
        _config_init(args.output)
    elif args.config_command == "path":
        _config_path()
    else:
        out.print("[yellow]Usage: drawio-relay config <show|init|path>[/yellow]")


def _config_show() -> None:
    """Show the effective configuration."""
    loaded_from = find_config_file()
    try:
        config = load_config(loaded_from)
    except (ConfigError, OSError, yaml.YAMLError) as e:
        out.print(f"[red]Failed to load {loaded_from}: {e}[/red]")
        sys.exit(1)

    if loaded_from is None:
        out.print("[dim]No config file found. Using defaults.[/dim]")
    else:
        out.print(f"[dim]Loaded from: {loaded_from}[/dim]\n")

    out.print("[bold]Current Configuration:[/bold]\n")
    out.print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def _config_init(output: str) -> None:
    """Write a default config file."""
    output_path = Path(output)

    if output_path.exists():
        out.print(f"[red]File already exists: {output_path}[/red]")
        sys.exit(1)

    with open(output_path, "w") as f:
        yaml.dump(RelayConfig().to_dict(), f, default_flow_style=False, sort_keys=False)

    out.print(f"[green]Created config file: {output_path}[/green]")


def _config_path() -> None:
    """Show config file search paths."""
    out.print("[bold]Config file search paths:[/bold]\n")

    names = ["Current directory", "User config"]
    for name, path in zip(names, config_search_paths()):
        exists = "[green]✓[/green]" if path.exists() else "[dim]·[/dim]"
        out.print(f"  {exists} {name}: {path}")


if __name__ == "__main__":
    main()
