"""Command-line interface for pricing and guarding pool operations."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from weighted_amm.client import PoolClient, Quote
from weighted_amm.config import settings_from_env
from weighted_amm.core.errors import PoolError, ValidationError
from weighted_amm.core.units import format_amount
from weighted_amm.guard.guards import GuardLayer
from weighted_amm.ledger.document import snapshot_from_document
from weighted_amm.ledger.memory import InMemoryPoolStateAccessor
from weighted_amm.log import configure_logging


def load_client(snapshot_file: Optional[str], base_token: Optional[str] = None) -> tuple[PoolClient, Optional[str]]:
    """Build a client serving the snapshot document at ``snapshot_file``.

    Returns the client and the id of the loaded pool.
    """
    accessor = InMemoryPoolStateAccessor()
    pool_id = None
    if snapshot_file is not None:
        path = Path(snapshot_file)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")
        snapshot = snapshot_from_document(json.loads(path.read_text()))
        accessor.add_snapshot(snapshot)
        pool_id = snapshot.pool_id
    guard = GuardLayer(settings=settings_from_env())
    return PoolClient(accessor, base_token=base_token, guard=guard), pool_id


def print_quote(quote: Quote) -> int:
    if not quote.approved:
        print(f"Rejected ({type(quote.result.error).__name__}): {quote.result.reason}")
        return 1
    print(json.dumps(quote.descriptor.to_dict(), indent=2))
    return 0


def price_command(args: argparse.Namespace) -> int:
    """Show spot prices and size limits for a token pair."""
    client, pool_id = load_client(args.snapshot)
    spot = client.get_spot_price(pool_id, args.token_in, args.token_out)
    sans_fee = client.get_spot_price_sans_fee(pool_id, args.token_in, args.token_out)
    max_out = client.get_max_buy_quantity(pool_id, args.token_out)
    print(f"Pool: {pool_id}")
    print(f"Spot price: {format_amount(spot)} {args.token_in} per {args.token_out}")
    print(f"Spot price (no fee): {format_amount(sans_fee)}")
    print(f"Max trade size: {format_amount(max_out)} {args.token_out}")
    return 0


def buy_command(args: argparse.Namespace) -> int:
    """Quote an exact-output swap."""
    client, pool_id = load_client(args.snapshot)
    return print_quote(client.quote_buy(
        pool_id, args.token_in, args.token_out, args.amount, args.max_in, args.max_price
    ))


def sell_command(args: argparse.Namespace) -> int:
    """Quote an exact-input swap."""
    client, pool_id = load_client(args.snapshot)
    return print_quote(client.quote_sell(
        pool_id, args.token_in, args.token_out, args.amount, args.min_out, args.max_price
    ))


def add_command(args: argparse.Namespace) -> int:
    """Quote a single-asset deposit."""
    client, pool_id = load_client(args.snapshot)
    return print_quote(client.quote_add_liquidity(pool_id, args.token, args.amount, args.min_shares))


def remove_command(args: argparse.Namespace) -> int:
    """Quote a single-asset withdrawal."""
    client, pool_id = load_client(args.snapshot)
    return print_quote(client.quote_remove_liquidity(
        pool_id, args.account, args.token, args.amount, args.max_shares, args.held_shares
    ))


def _parse_minimums(pairs: Optional[list[str]]) -> dict[str, str]:
    """Turn ``TOKEN=AMOUNT`` arguments into a minimum per token."""
    minimums = {}
    for pair in pairs or []:
        token, sep, amount = pair.partition("=")
        if not sep or not token or not amount:
            raise ValidationError(f"Expected TOKEN=AMOUNT, got {pair!r}")
        minimums[token] = amount
    return minimums


def exit_command(args: argparse.Namespace) -> int:
    """Quote a proportional exit burning pool shares for every token."""
    client, pool_id = load_client(args.snapshot)
    return print_quote(client.quote_exit_pool(
        pool_id, args.account, args.shares, args.held_shares, _parse_minimums(args.min_out)
    ))


def create_command(args: argparse.Namespace) -> int:
    """Plan a two-token pool launch against a base token."""
    client, _ = load_client(None, base_token=args.base_token)
    return print_quote(client.plan_pool_creation(args.token, args.amount, args.weight, args.fee))


def _add_snapshot_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("snapshot", help="Path to a pool snapshot JSON document")


def _add_pair_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--token-in", required=True, help="Token paid into the pool")
    parser.add_argument("--token-out", required=True, help="Token received from the pool")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Weighted pool engine - price, guard and prepare pool operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  weighted-amm price pool.json --token-in OCEAN --token-out DT
  weighted-amm buy pool.json --token-in OCEAN --token-out DT --amount 5 --max-in 30
  weighted-amm exit pool.json --shares 10 --min-out DT=19
  weighted-amm create --token DT --amount 10 --weight 3 --fee 0.05 --base-token OCEAN
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug events to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Price command
    price_parser = subparsers.add_parser("price", help="Show spot price and trade limit")
    _add_snapshot_arg(price_parser)
    _add_pair_args(price_parser)
    price_parser.set_defaults(func=price_command)

    # Buy command
    buy_parser = subparsers.add_parser("buy", help="Quote buying an exact amount out")
    _add_snapshot_arg(buy_parser)
    _add_pair_args(buy_parser)
    buy_parser.add_argument("--amount", required=True, help="Exact amount of token out")
    buy_parser.add_argument("--max-in", required=True, help="Maximum amount of token in to pay")
    buy_parser.add_argument("--max-price", default=None, help="Price cap before and after the trade")
    buy_parser.set_defaults(func=buy_command)

    # Sell command
    sell_parser = subparsers.add_parser("sell", help="Quote selling an exact amount in")
    _add_snapshot_arg(sell_parser)
    _add_pair_args(sell_parser)
    sell_parser.add_argument("--amount", required=True, help="Exact amount of token in")
    sell_parser.add_argument("--min-out", default="0", help="Minimum amount of token out")
    sell_parser.add_argument("--max-price", default=None, help="Price cap before and after the trade")
    sell_parser.set_defaults(func=sell_command)

    # Add liquidity command
    add_parser = subparsers.add_parser("add", help="Quote a single-asset deposit")
    _add_snapshot_arg(add_parser)
    add_parser.add_argument("--token", required=True, help="Token deposited")
    add_parser.add_argument("--amount", required=True, help="Amount deposited")
    add_parser.add_argument("--min-shares", default="0", help="Minimum pool shares minted")
    add_parser.set_defaults(func=add_command)

    # Remove liquidity command
    remove_parser = subparsers.add_parser("remove", help="Quote a single-asset withdrawal")
    _add_snapshot_arg(remove_parser)
    remove_parser.add_argument("--token", required=True, help="Token withdrawn")
    remove_parser.add_argument("--amount", required=True, help="Amount withdrawn")
    remove_parser.add_argument("--max-shares", required=True, help="Maximum pool shares burned")
    remove_parser.add_argument("--account", default="", help="Account holding the shares")
    remove_parser.add_argument("--held-shares", default=None, help="Pool shares held by the account")
    remove_parser.set_defaults(func=remove_command)

    # Exit pool command
    exit_parser = subparsers.add_parser("exit", help="Quote a proportional exit")
    _add_snapshot_arg(exit_parser)
    exit_parser.add_argument("--shares", required=True, help="Pool shares burned")
    exit_parser.add_argument(
        "--min-out", action="append", metavar="TOKEN=AMOUNT", help="Minimum amount of a token"
    )
    exit_parser.add_argument("--account", default="", help="Account holding the shares")
    exit_parser.add_argument("--held-shares", default=None, help="Pool shares held by the account")
    exit_parser.set_defaults(func=exit_command)

    # Create command
    create_parser = subparsers.add_parser("create", help="Plan a two-token pool launch")
    create_parser.add_argument("--token", required=True, help="Token being launched")
    create_parser.add_argument("--amount", required=True, help="Initial amount of the token")
    create_parser.add_argument("--weight", required=True, help="Token weight out of 10")
    create_parser.add_argument("--fee", required=True, help="Swap fee as a fraction")
    create_parser.add_argument("--base-token", required=True, help="Token the launch is priced in")
    create_parser.set_defaults(func=create_command)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.verbose)
    try:
        return args.func(args)
    except (PoolError, FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
