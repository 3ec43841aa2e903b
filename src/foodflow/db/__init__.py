"""PostgreSQL connections and the bundled schema."""

from foodflow.db.connection import bundled_schema, conninfo_for, init_database

__all__ = [
    "bundled_schema",
    "conninfo_for",
    "init_database",
]
