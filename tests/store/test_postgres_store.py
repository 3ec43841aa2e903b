"""Tests for foodflow.store.postgres with the repository layer mocked."""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from psycopg import errors as pg_errors
from pypgkit.exceptions import RepositoryError

from foodflow.app.errors import StorePermissionError, StoreUnavailableError
from foodflow.core.filters import OrderFilter
from foodflow.core.types import GuardKind, OrderStatus
from foodflow.store.base import WriteGuard
from foodflow.store.postgres import (
    PostgresOrderStore,
    PostgresProfileDirectory,
    translate_errors,
)


def _realtime(enabled=False):
    return SimpleNamespace(
        enabled=enabled,
        channel="orders_changes",
        poll_seconds=1.0,
        reconnect_backoff_base_seconds=1.0,
        reconnect_backoff_max_seconds=30.0,
    )


@pytest.fixture()
def repo():
    with patch("foodflow.store.postgres.OrderRepository") as cls:
        yield cls.return_value


@pytest.fixture()
def pg_store(repo):
    return PostgresOrderStore(MagicMock(), "dbname=shop", _realtime())


class TestTranslateErrors:
    def test_operational_error_is_unavailable(self):
        with pytest.raises(StoreUnavailableError, match="read order failed"):
            with translate_errors("read order"):
                raise psycopg.OperationalError("server closed the connection")

    def test_interface_error_is_unavailable(self):
        with pytest.raises(StoreUnavailableError):
            with translate_errors("status write"):
                raise psycopg.InterfaceError("connection already closed")

    def test_insufficient_privilege_is_permission(self):
        with pytest.raises(StorePermissionError, match="refused"):
            with translate_errors("status write"):
                raise pg_errors.InsufficientPrivilege("rls")

    def test_other_errors_propagate(self):
        with pytest.raises(KeyError):
            with translate_errors("read order"):
                raise KeyError("x")

    def test_repository_error_is_unavailable(self):
        with pytest.raises(StoreUnavailableError, match="create order failed"):
            with translate_errors("create order"):
                raise RepositoryError("Failed to create entity: connection refused")

    def test_repository_error_over_rls_refusal_is_permission(self):
        def _refused():
            try:
                raise pg_errors.InsufficientPrivilege("new row violates row-level security")
            except pg_errors.InsufficientPrivilege as e:
                raise RepositoryError("Failed to create entity") from e

        with pytest.raises(StorePermissionError):
            with translate_errors("create order"):
                _refused()


class TestPostgresOrderStore:
    def test_write_maps_none_to_zero_rows(self, pg_store, repo):
        repo.guarded_update.return_value = None
        guard = WriteGuard(OrderStatus.READY, GuardKind.UNASSIGNED, uuid.uuid4())
        assert pg_store.write_order_status(uuid.uuid4(), guard, OrderStatus.ASSIGNED) == (
            0,
            None,
        )

    def test_write_returns_row(self, pg_store, repo):
        row = MagicMock()
        repo.guarded_update.return_value = row
        oid = uuid.uuid4()
        guard = WriteGuard(OrderStatus.PENDING, GuardKind.OWNER, uuid.uuid4(), "vendor_id")
        result = pg_store.write_order_status(oid, guard, OrderStatus.PREPARING, {"x": 1})
        assert result == (1, row)
        repo.guarded_update.assert_called_once_with(oid, guard, OrderStatus.PREPARING, {"x": 1})

    def test_read_failure_translated(self, pg_store, repo):
        repo.find_matching.side_effect = psycopg.OperationalError("down")
        with pytest.raises(StoreUnavailableError):
            pg_store.read_orders(OrderFilter())

    def test_realtime_disabled_has_no_feed(self, pg_store):
        sub = pg_store.subscribe(OrderFilter(), MagicMock(), MagicMock(), MagicMock())
        assert sub is not None
        pg_store.close()

    def test_realtime_enabled_starts_feed(self, repo):
        with patch("foodflow.store.postgres.PgChangeFeed") as feed_cls:
            store = PostgresOrderStore(MagicMock(), "dbname=shop", _realtime(enabled=True))
            store.subscribe(OrderFilter(), MagicMock(), MagicMock(), MagicMock())
            store.close()
        feed = feed_cls.return_value
        assert feed_cls.call_args.kwargs["channel"] == "orders_changes"
        assert feed_cls.call_args.kwargs["hydrate"] == store.read_order
        feed.start.assert_called_once()
        feed.stop.assert_called_once()


class TestPostgresProfileDirectory:
    def test_failure_translated(self):
        with patch("foodflow.store.postgres.ProfileRepository") as cls:
            cls.return_value.find_profile.side_effect = psycopg.OperationalError("down")
            directory = PostgresProfileDirectory(MagicMock())
            with pytest.raises(StoreUnavailableError):
                directory.find_profile(uuid.uuid4())


class TestDriverFailuresThroughRepositories:
    """Real repositories over a ``Database`` whose queries fail."""

    @pytest.fixture()
    def db(self):
        db = MagicMock()
        db.fetch_one.side_effect = psycopg.OperationalError("server closed the connection")
        db.fetch_all.side_effect = psycopg.OperationalError("server closed the connection")
        with patch("foodflow.repositories.order.Database") as db_cls:
            db_cls.get_instance.return_value = db
            yield db

    def test_read_order(self, db):
        store = PostgresOrderStore(db, "dbname=shop", _realtime())
        with pytest.raises(StoreUnavailableError, match="read order failed"):
            store.read_order(uuid.uuid4())

    def test_read_orders(self, db):
        store = PostgresOrderStore(db, "dbname=shop", _realtime())
        with pytest.raises(StoreUnavailableError, match="read orders failed"):
            store.read_orders(OrderFilter())

    def test_create_order(self, db, make_order):
        store = PostgresOrderStore(db, "dbname=shop", _realtime())
        with pytest.raises(StoreUnavailableError, match="create order failed"):
            store.create_order(make_order())

    def test_status_write(self, db):
        store = PostgresOrderStore(db, "dbname=shop", _realtime())
        guard = WriteGuard(OrderStatus.READY, GuardKind.UNASSIGNED, uuid.uuid4())
        with pytest.raises(StoreUnavailableError, match="status write failed"):
            store.write_order_status(uuid.uuid4(), guard, OrderStatus.ASSIGNED)

    def test_rls_refusal_on_create(self, db, make_order):
        db.fetch_one.side_effect = pg_errors.InsufficientPrivilege("row-level security")
        store = PostgresOrderStore(db, "dbname=shop", _realtime())
        with pytest.raises(StorePermissionError):
            store.create_order(make_order())

    def test_find_profile(self, db):
        directory = PostgresProfileDirectory(db)
        with pytest.raises(StoreUnavailableError, match="read profile failed"):
            directory.find_profile(uuid.uuid4())
