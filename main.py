#!/usr/bin/env python3
"""
grocer-gateway - Command-line access to the shop API
=====================================================

Usage:
    python main.py endpoints                       # List known endpoints
    python main.py debug GET customers/{id}/cart/  # Send a raw request
    python main.py customer                        # Customer info / token check
    python main.py orders --all                    # Order history
    python main.py cart                            # Current cart
    python main.py recommendations --type recall   # Recommendations
    python main.py warehouse 28001                 # Change warehouse

The token and customer ID come from GROCER_TOKEN / GROCER_CUSTOMER_ID.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from api import ENDPOINTS, ApiClient, RecommendationType, Validator, ensure_valid, find_endpoint
from api.debug import ResponseEnvelope
from core.errors import ApiError, ErrorHandler, ValidationError
from infra.config import load_config
from infra.credentials import InMemoryCredentialStore
from infra.logging import configure_logging

console = Console()


def print_endpoints() -> None:
    """Print the endpoint catalog."""
    table = Table(title="Known endpoints")
    table.add_column("ID", style="cyan")
    table.add_column("Method", style="bold")
    table.add_column("Path")
    table.add_column("Description", style="dim")
    for endpoint in ENDPOINTS:
        table.add_row(endpoint.id, endpoint.method.value, endpoint.path, endpoint.description)
    console.print(table)


def print_envelope(envelope: ResponseEnvelope) -> None:
    """Print a debug response."""
    if envelope.error is not None:
        console.print(Panel(
            f"[red]{envelope.error}[/red]\n[dim]{envelope.duration_ms} ms[/dim]",
            title="Request failed", border_style="red",
        ))
        return

    style = "green" if envelope.ok else "yellow"
    console.print(f"[bold {style}]{envelope.status_code} {envelope.status_message}[/bold {style}]"
                  f" [dim]{envelope.duration_ms} ms - {envelope.url}[/dim]")

    headers = Table(show_header=False, box=None)
    for name, value in envelope.request_headers.items():
        headers.add_row("[dim]>[/dim]", name, value)
    for name, value in envelope.headers.items():
        headers.add_row("[dim]<[/dim]", name, value)
    console.print(headers)

    if envelope.body:
        try:
            console.print_json(envelope.body)
        except json.JSONDecodeError:
            console.print(envelope.body)


def print_model(data) -> None:
    console.print_json(json.dumps(data))


def parse_query(pairs: List[str]) -> List[Tuple[str, str]]:
    query = []
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Parameter must be key=value: {pair}")
        query.append((key, value))
    return query


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="grocer-gateway - shop API client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console logging level",
    )
    parser.add_argument("--customer", default=None, help="Customer ID (overrides environment)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("endpoints", help="List known endpoints")

    debug = sub.add_parser("debug", help="Send a raw request")
    debug.add_argument("method", help="GET, POST, PUT or DELETE, or a catalog endpoint ID")
    debug.add_argument("path", nargs="?", default=None, help="Path relative to the base URL")
    debug.add_argument("-q", "--query", action="append", default=[], help="Query parameter key=value")
    debug.add_argument("-p", "--param", action="append", default=[], help="Path parameter key=value")
    debug.add_argument("--body", default=None, help="JSON request body")

    sub.add_parser("customer", help="Show customer info and check the token")

    orders = sub.add_parser("orders", help="List orders")
    orders.add_argument("--page", type=int, default=1)
    orders.add_argument("--all", action="store_true", help="Fetch every page")

    sub.add_parser("cart", help="Show the current cart")

    recs = sub.add_parser("recommendations", help="Show recommendations")
    recs.add_argument("--type", default=RecommendationType.PRECISION.value,
                      choices=[t.value for t in RecommendationType])

    warehouse = sub.add_parser("warehouse", help="Change warehouse by postal code")
    warehouse.add_argument("postal_code")

    return parser


async def run_debug(client: ApiClient, args, customer_id: Optional[str]) -> int:
    try:
        path_params = dict(parse_query(args.param))
        query = parse_query(args.query)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 2
    if customer_id:
        path_params.setdefault("customer_id", customer_id)

    endpoint = find_endpoint(args.method)
    if endpoint is not None:
        try:
            descriptor = endpoint.describe(path_params, query, args.body)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return 2
        envelope = await client.execute_debug(
            descriptor.method, descriptor.path, descriptor.query, descriptor.body
        )
    else:
        if args.path is None:
            console.print("[red]A path is required unless METHOD is an endpoint ID.[/red]")
            return 2
        envelope = await client.execute_debug(
            args.method, args.path, query, args.body, path_params
        )

    print_envelope(envelope)
    return 0 if envelope.ok else 1


def check_stored_token(store: InMemoryCredentialStore) -> None:
    """Reject a malformed token before it is sent anywhere."""
    token = store.get_token()
    if token is not None:
        ensure_valid(Validator().token(token), "token")


async def run_command(args) -> int:
    config = load_config(args.config)
    store = InMemoryCredentialStore.from_environment()
    customer_id = args.customer or store.customer_id
    errors = ErrorHandler()

    try:
        check_stored_token(store)
    except ValidationError as e:
        console.print(f"[bold red]Error:[/bold red] {errors.handle(e)}")
        return 1

    async with ApiClient(config, credential_store=store) as client:
        if args.command == "debug":
            return await run_debug(client, args, customer_id)

        try:
            if args.command == "customer":
                customer = await client.get_customer_info(customer_id)
                console.print("[green]Token is valid.[/green]")
                print_model(customer.to_json())
            elif args.command == "orders":
                if args.all:
                    orders = await client.get_all_orders(customer_id)
                    print_model([o.to_json() for o in orders])
                else:
                    print_model((await client.get_order_page(customer_id, args.page)).to_json())
            elif args.command == "cart":
                print_model((await client.get_cart(customer_id)).to_json())
            elif args.command == "recommendations":
                page = await client.get_recommendations(customer_id, args.type)
                print_model(page.to_json())
            elif args.command == "warehouse":
                result = await client.set_warehouse(args.postal_code)
                console.print(f"Warehouse changed: {result.warehouse_changed}")
        except ApiError as e:
            console.print(f"[bold red]Error:[/bold red] {errors.handle(e)}")
            return 1

    return 0


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    configure_logging(level=getattr(logging, args.log_level), console=Console(stderr=True))

    if args.command == "endpoints":
        print_endpoints()
        return 0

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
