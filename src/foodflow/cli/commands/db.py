"""Database management subcommands."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)

_TABLES = ("profiles", "orders")


def run_db(config, args) -> None:
    """Handle db subcommands."""
    if config.settings.store.backend != "postgres":
        print("db commands need store.backend: postgres", file=sys.stderr)
        sys.exit(1)
    if args.db_command == "status":
        _db_status(config)
    elif args.db_command == "migrate":
        _db_migrate(config)
    else:
        print("usage: foodflow db {status,migrate}", file=sys.stderr)
        sys.exit(1)


def _db_status(config) -> None:
    """Check database connectivity, tables and the change-notify trigger."""
    from foodflow.db import init_database

    try:
        db = init_database(config.settings.database)
        db.fetch_value("SELECT 1")
        tables = db.fetch_value(
            "SELECT count(*) FROM information_schema.tables "
            "WHERE table_schema = 'public' AND table_name = ANY(%s)",
            (list(_TABLES),),
        )
        trigger = db.fetch_value(
            "SELECT count(*) FROM information_schema.triggers "
            "WHERE event_object_table = 'orders' AND trigger_name = 'orders_notify_change'",
        )
    except Exception as exc:
        log.exception("Database status check failed")
        print(f"database: unreachable ({exc})", file=sys.stderr)
        sys.exit(1)

    print("database: reachable")
    print(f"tables  : {tables}/{len(_TABLES)} present")
    print(f"trigger : {'installed' if trigger else 'missing'}")
    if tables != len(_TABLES) or not trigger:
        sys.exit(2)


def _db_migrate(config) -> None:
    """Apply the bundled schema; every statement is idempotent."""
    from foodflow.db import bundled_schema, init_database
    from foodflow.db.connection import SCHEMA_FILE

    try:
        db = init_database(config.settings.database)
        db.execute(bundled_schema())
    except Exception as exc:
        log.exception("Schema migration failed")
        print(f"migration failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"schema applied from {SCHEMA_FILE.name}")
