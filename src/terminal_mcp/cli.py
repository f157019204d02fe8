"""
Operator console for the Terminal.shop operation catalog.

Runs operations directly against the API without an MCP client:

    terminal-shop-cli list
    terminal-shop-cli call search-products '{"query": "espresso"}'
    terminal-shop-cli            # interactive: > get-cart
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, Tuple

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from .config import Settings
from .errors import ConfigurationError
from .operations import OperationRegistry, OperationResult
from .terminal_client import TerminalClient


def parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    """Parse a JSON object of operation arguments. Empty input means no arguments."""
    if raw is None or not raw.strip():
        return {}
    arguments = json.loads(raw)
    if not isinstance(arguments, dict):
        raise ValueError("arguments must be a JSON object")
    return arguments


def split_command(line: str) -> Tuple[str, Dict[str, Any]]:
    """Split a console line such as ``add-to-cart {"quantity": 1}`` into name and arguments."""
    parts = line.strip().split(maxsplit=1)
    name = parts[0]
    return name, parse_arguments(parts[1] if len(parts) > 1 else None)


def print_operations(console: Console, registry: OperationRegistry) -> None:
    table = Table(title="Terminal.shop operations")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Resource")
    table.add_column("Description")
    for definition in registry.definitions():
        table.add_row(
            definition.name,
            definition.kind.value,
            definition.resource_uri or "",
            definition.description,
        )
    console.print(table)


def print_result(console: Console, result: OperationResult) -> None:
    if result.is_error:
        console.print(f"[bold red]{result.error_kind}:[/bold red] [red]{escape(result.text)}[/red]")
        return
    console.print(Markdown(result.text))


async def run_operation(console: Console, registry: OperationRegistry, name: str, arguments: Dict[str, Any]) -> bool:
    console.print(f"[bold yellow]Operation:[/bold yellow] [green]{name}[/green] [cyan]{escape(str(arguments))}[/cyan]")
    result = await registry.run(name, arguments)
    print_result(console, result)
    return not result.is_error


async def interactive(console: Console, registry: OperationRegistry, read_line: Callable[[str], str] = input) -> None:
    console.print("Type an operation name followed by optional JSON arguments. 'list' shows operations, 'exit' quits.")
    while True:
        try:
            line = read_line("> ")
        except EOFError:
            break
        command = line.strip()
        if not command:
            continue
        if command.lower() in ("exit", "quit"):
            break
        if command.lower() == "list":
            print_operations(console, registry)
            continue
        try:
            name, arguments = split_command(command)
        except ValueError as e:
            console.print(f"[red]Invalid arguments: {escape(str(e))}[/red]")
            continue
        await run_operation(console, registry, name, arguments)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Terminal.shop operator console')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('list', help='List available operations')
    call_parser = subparsers.add_parser('call', help='Run one operation')
    call_parser.add_argument('operation', help='Operation name, e.g. search-products')
    call_parser.add_argument('arguments', nargs='?', help='Operation arguments as a JSON object')
    return parser


def run_cli(argv=None, registry: Optional[OperationRegistry] = None, console: Optional[Console] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(levelname)s - %(name)s - %(message)s',
        stream=sys.stderr,
    )

    if registry is None:
        try:
            registry = OperationRegistry(TerminalClient(Settings.from_env()))
        except ConfigurationError as e:
            console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
            return 1

    if args.command == 'list':
        print_operations(console, registry)
        return 0

    if args.command == 'call':
        try:
            arguments = parse_arguments(args.arguments)
        except ValueError as e:
            console.print(f"[bold red]Invalid arguments:[/bold red] {escape(str(e))}")
            return 1
        succeeded = asyncio.run(run_operation(console, registry, args.operation, arguments))
        return 0 if succeeded else 1

    asyncio.run(interactive(console, registry))
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
