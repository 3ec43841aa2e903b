"""Connecting foodflow to PostgreSQL.

One ``database`` config section feeds two kinds of connection: the
pypgkit pool behind every repository, and the single autocommit
connection the change feed holds open for ``LISTEN``.  Each reports
its own ``application_name`` so the two show up apart in
``pg_stat_activity``.

Usage::

    from foodflow.db import conninfo_for, init_database

    db = init_database(settings.database)
    store = PostgresOrderStore(db, conninfo_for(settings.database), settings.realtime)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from psycopg.conninfo import make_conninfo
from pypgkit import Database, DatabaseConfig

if TYPE_CHECKING:
    from foodflow.config.settings import DatabaseSettings

log = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).with_name("schema.sql")

POOL_APPLICATION = "foodflow"
FEED_APPLICATION = "foodflow-change-feed"


def bundled_schema() -> str:
    """DDL for ``profiles``, ``orders`` and the change-notify trigger."""
    return SCHEMA_FILE.read_text(encoding="utf-8")


def pool_config(settings: DatabaseSettings) -> DatabaseConfig:
    return DatabaseConfig(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        user=settings.user,
        password=settings.password,
        sslmode=settings.sslmode,
        min_connections=settings.min_connections,
        max_connections=settings.max_connections,
        connection_timeout=settings.connection_timeout,
        options={"application_name": POOL_APPLICATION},
    )


def conninfo_for(settings: DatabaseSettings) -> str:
    """libpq string for the change feed's own ``LISTEN`` connection.

    Pooled connections go back to the pool between queries and would
    drop their ``LISTEN`` registration, hence a separate connection.
    """
    return make_conninfo(
        host=settings.host,
        port=settings.port,
        dbname=settings.database,
        user=settings.user,
        password=settings.password or None,
        sslmode=settings.sslmode,
        # libpq only takes whole seconds here.
        connect_timeout=max(1, round(settings.connection_timeout)),
        application_name=FEED_APPLICATION,
    )


def init_database(settings: DatabaseSettings) -> Database:
    """Return the process-wide pool, creating it on first call.

    With ``auto_setup`` pypgkit creates a missing database and role and
    applies :data:`SCHEMA_FILE` without prompting; otherwise the pool
    connects to whatever already exists.
    """
    if Database.is_initialized():
        return Database.get_instance()

    log.info(
        "Opening order database %s on %s:%s as %s (pool %d-%d%s)",
        settings.database,
        settings.host,
        settings.port,
        settings.user,
        settings.min_connections,
        settings.max_connections,
        ", auto setup" if settings.auto_setup else "",
    )
    return Database.init(
        config=pool_config(settings),
        schema_path=SCHEMA_FILE if settings.auto_setup else None,
        auto_setup=settings.auto_setup,
        interactive=False,
    )
