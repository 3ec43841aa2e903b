"""Inspect subcommand: dump stored orders for debugging.

Usage::

    foodflow -c config.yaml inspect order <uuid>
"""

from __future__ import annotations

import json
import sys
from uuid import UUID


def run_inspect(config, args) -> None:
    """Dispatch to the appropriate inspect sub-handler."""
    sub = getattr(args, "inspect_command", None)
    if sub != "order":
        print("usage: foodflow inspect order <uuid>", file=sys.stderr)
        sys.exit(1)

    from foodflow.cli.commands.orders import open_store

    store, _profiles = open_store(config)
    try:
        _inspect_order(store, args.resource_id)
    finally:
        store.close()


def _inspect_order(store, resource_id: str) -> None:
    """Print the order as JSON, customer PII redacted."""
    from foodflow.logging.sanitize import sanitize_for_logs
    from foodflow.models.records import order_to_json

    try:
        oid = UUID(resource_id)
    except ValueError:
        print(f"not a UUID: {resource_id}", file=sys.stderr)
        sys.exit(1)

    order = store.read_order(oid)
    if order is None:
        print(f"order {oid} not found", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(sanitize_for_logs(order_to_json(order)), indent=2, default=str))
