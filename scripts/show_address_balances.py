#!/usr/bin/env python3
"""
Show Ergo address balances, used addresses and DEX token rates.

This script queries the Ergo explorer for a set of addresses, merges
their token and ERG balances into one CSV report, and can also list the
addresses that have transaction history or dump ERG-denominated token
prices from the DEX market feed.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from scripts.lib.batching import DEFAULT_CHUNK_BY
from scripts.lib.explorer_client import (
    DEFAULT_API_URL,
    DEFAULT_MARKETS_URL,
    ExplorerAPIError,
    ExplorerClient,
)
from scripts.lib.explorer_service import ExplorerService
from scripts.lib.formatters import write_csv, write_rates_csv


def log(scope: str, message: str) -> None:
    """Log a message with scope prefix."""
    print(f"[{scope}] {message}", file=sys.stderr)


def dedupe_addresses(addresses: List[str]) -> List[str]:
    """
    Strip and deduplicate addresses, keeping first occurrences.

    Raises:
        ValueError: If no address is left
    """
    seen = set()
    result = []
    for address in addresses:
        address = address.strip()
        if address and address not in seen:
            seen.add(address)
            result.append(address)

    if not result:
        raise ValueError("No addresses given")
    return result


async def run_balances(
    service: ExplorerService,
    addresses: List[str],
    chunk_by: int,
    used_only: bool,
    output: Optional[str],
) -> None:
    if used_only:
        log("balances", f"Checking history of {len(addresses)} address(es)...")
        addresses = await service.get_used_addresses(addresses, chunk_by=chunk_by)
        log("balances", f"Found {len(addresses)} used address(es)")

    log("balances", f"Fetching balances of {len(addresses)} address(es)...")
    balances = await service.get_addresses_balance(addresses, chunk_by=chunk_by)
    log("balances", f"Found {len(balances)} asset balance(s)")

    filename = write_csv(balances, output)
    if filename:
        log("balances", f"Results written to: {filename}")


async def run_used(service: ExplorerService, addresses: List[str], chunk_by: int) -> None:
    log("used", f"Checking history of {len(addresses)} address(es)...")
    for address in await service.get_used_addresses(addresses, chunk_by=chunk_by):
        print(address)


async def run_rates(service: ExplorerService, output: Optional[str]) -> None:
    log("rates", "Fetching DEX markets for the last 30 days...")
    rates = await service.get_token_rates()
    log("rates", f"Found rates for {len(rates)} token(s)")

    filename = write_rates_csv(rates, output)
    if filename:
        log("rates", f"Results written to: {filename}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Aggregate Ergo explorer data across many addresses.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Balances of two addresses, output to stdout
  %(prog)s balances --addresses 9f... 9h...

  # Only addresses with history, 10 requests at a time, save to file
  %(prog)s balances --addresses 9f... 9h... --used-only --chunk-by 10 --output balances.csv

  # ERG prices of DEX tokens
  %(prog)s rates
        """,
    )
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="Explorer base URL")
    parser.add_argument("--markets-url", default=DEFAULT_MARKETS_URL, help="DEX markets URL")

    subparsers = parser.add_subparsers(dest="command", required=True)

    balances = subparsers.add_parser("balances", help="Write merged address balances as CSV")
    balances.add_argument("--addresses", nargs="+", required=True, help="Addresses to query")
    balances.add_argument(
        "--chunk-by",
        type=int,
        default=DEFAULT_CHUNK_BY,
        help="Concurrent requests per chunk (<= 0 disables chunking)",
    )
    balances.add_argument(
        "--used-only",
        action="store_true",
        help="Skip addresses without transaction history",
    )
    balances.add_argument(
        "--output",
        help="Output file path (timestamp auto-appended). If not specified, outputs to stdout.",
    )

    used = subparsers.add_parser("used", help="List addresses with transaction history")
    used.add_argument("--addresses", nargs="+", required=True, help="Addresses to query")
    used.add_argument("--chunk-by", type=int, default=DEFAULT_CHUNK_BY)

    rates = subparsers.add_parser("rates", help="Write ERG-denominated token rates as CSV")
    rates.add_argument("--output", help="Output file path (timestamp auto-appended)")

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parsed_args = build_parser().parse_args(args)

    service = ExplorerService(ExplorerClient(parsed_args.api_url, parsed_args.markets_url))

    try:
        if parsed_args.command == "rates":
            asyncio.run(run_rates(service, parsed_args.output))
            return 0

        addresses = dedupe_addresses(parsed_args.addresses)
        if parsed_args.command == "used":
            asyncio.run(run_used(service, addresses, parsed_args.chunk_by))
        else:
            asyncio.run(
                run_balances(
                    service,
                    addresses,
                    parsed_args.chunk_by,
                    parsed_args.used_only,
                    parsed_args.output,
                )
            )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ExplorerAPIError as e:
        log(parsed_args.command, f"ERROR: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
