"""FOODFLOW command-line entry point.

Usage::

    foodflow -c config.yaml --validate-only
    foodflow -c config.yaml db status
    foodflow -c config.yaml db migrate
    foodflow -c config.yaml inspect order <uuid>
    foodflow -c config.yaml orders list --as <user> --view vendor.incoming
    foodflow -c config.yaml orders transition --as <user> <order> ready
    foodflow -c config.yaml orders watch --as <user> --view deliverer.available
    python -m foodflow -c config.yaml orders list --as <user>
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from foodflow import __version__

    return __version__


def _add_actor_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--as",
        dest="user",
        required=True,
        metavar="USER_ID",
        help="Profile UUID of the acting user.",
    )
    parser.add_argument(
        "--role",
        choices=("vendor", "deliverer", "customer"),
        default=None,
        help="Act in this role instead of looking it up in the profile.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="foodflow",
        description="FOODFLOW order lifecycle client for a food-delivery marketplace",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # db
    db_parser = subparsers.add_parser("db", help="Database management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("status", help="Check database connectivity and schema")
    db_sub.add_parser("migrate", help="Apply the bundled schema")

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="Inspect stored resources")
    inspect_sub = inspect_parser.add_subparsers(dest="inspect_command")
    order_parser = inspect_sub.add_parser("order", help="Inspect an order by UUID")
    order_parser.add_argument("resource_id", help="The order ID to inspect")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Act on orders as a user")
    orders_sub = orders_parser.add_subparsers(dest="orders_command")

    list_parser = orders_sub.add_parser("list", help="Print one view of the user's orders")
    _add_actor_arguments(list_parser)
    list_parser.add_argument("--view", default=None, help="View name, e.g. vendor.incoming")

    transition_parser = orders_sub.add_parser("transition", help="Move an order to a status")
    _add_actor_arguments(transition_parser)
    transition_parser.add_argument("order_id", help="The order ID")
    transition_parser.add_argument("status", help="Target status (legacy spellings accepted)")
    transition_parser.add_argument(
        "--payment-confirmed",
        action="store_true",
        default=False,
        help="Confirm payment was collected (required to complete).",
    )

    watch_parser = orders_sub.add_parser("watch", help="Follow a view in realtime")
    _add_actor_arguments(watch_parser)
    watch_parser.add_argument("--view", default=None, help="View name, e.g. vendor.incoming")
    watch_parser.add_argument(
        "--seconds",
        type=float,
        default=None,
        help="Stop after this many seconds (default: until interrupted).",
    )

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"foodflow: error: {message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs a command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from foodflow.config import ConfigValidationError, FoodflowConfig

        config = FoodflowConfig(config_file=str(config_path), schema_file="bundled")
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from foodflow.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only or args.command is None:
        _print_settings_summary(config)
        sys.exit(0)

    # -- dispatch subcommand ---
    command = args.command

    if command == "db":
        from foodflow.cli.commands.db import run_db

        run_db(config, args)
    elif command == "inspect":
        from foodflow.cli.commands.inspect import run_inspect

        run_inspect(config, args)
    elif command == "orders":
        from foodflow.cli.commands.orders import run_orders

        run_orders(config, args)
    else:
        parser.print_help()
        sys.exit(1)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    print(f"foodflow {_get_version()}: configuration OK")
    print(f"  store backend : {s.store.backend}")
    if s.store.backend == "postgres":
        db = s.database
        print(f"  database      : {db.user}@{db.host}:{db.port}/{db.database}")
    realtime = "on" if s.realtime.enabled else "off"
    print(f"  realtime      : {realtime} (channel {s.realtime.channel})")
    print(f"  hooks         : {len(s.hooks.registered)} registered")
    print(f"  payment check : {'required' if s.orders.require_payment_confirmation else 'off'}")
