"""Tests for foodflow.views.screen.OrderScreen lifecycle."""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest

from foodflow.app.errors import UNAUTHORIZED, OrderProblem, StoreUnavailableError
from foodflow.core.types import OrderStatus
from foodflow.screens.vendor import VendorOrdersScreen

# ---------------------------------------------------------------------------
# Opening
# ---------------------------------------------------------------------------


class TestOpen:
    def test_loads_only_scope(self, store, seed, session_for, vendor, make_order):
        mine = seed(OrderStatus.PENDING)
        seed(OrderStatus.COMPLETED)
        store.create_order(make_order(OrderStatus.PENDING, vendor_id=uuid.uuid4()))

        with VendorOrdersScreen(store, session_for(vendor)) as screen:
            assert screen.orders() == [mine]
            assert store.subscription_count == 1

    def test_events_during_load_are_replayed(self, store, seed, session_for, vendor):
        first = seed(OrderStatus.PENDING)
        real_read = store.read_orders
        late = {}

        def _read_then_race(order_filter):
            rows = real_read(order_filter)
            late["order"] = seed(OrderStatus.PENDING)
            return rows

        screen = VendorOrdersScreen(store, session_for(vendor))
        with patch.object(store, "read_orders", side_effect=_read_then_race):
            screen.open()

        assert {o.id for o in screen.incoming()} == {first.id, late["order"].id}
        screen.close()

    def test_failed_load_unsubscribes(self, store, session_for, vendor):
        screen = VendorOrdersScreen(store, session_for(vendor))
        with (
            patch.object(store, "read_orders", side_effect=StoreUnavailableError("timeout")),
            pytest.raises(StoreUnavailableError),
        ):
            screen.open()
        assert store.subscription_count == 0
        assert not screen.is_open

    def test_role_mismatch(self, store, session_for, customer):
        screen = VendorOrdersScreen(store, session_for(customer))
        with pytest.raises(OrderProblem) as exc_info:
            screen.open()
        assert exc_info.value.error_type == UNAUTHORIZED

    def test_open_twice_is_noop(self, store, session_for, vendor):
        screen = VendorOrdersScreen(store, session_for(vendor))
        assert screen.open() is screen.open()
        assert store.subscription_count == 1
        screen.close()


# ---------------------------------------------------------------------------
# Realtime and closing
# ---------------------------------------------------------------------------


class TestLiveUpdates:
    def test_new_order_appears(self, store, seed, session_for, vendor):
        with VendorOrdersScreen(store, session_for(vendor)) as screen:
            order = seed(OrderStatus.PENDING)
            assert screen.incoming() == [order]

    def test_refresh_reloads(self, store, seed, session_for, vendor):
        with VendorOrdersScreen(store, session_for(vendor)) as screen:
            order = seed(OrderStatus.PENDING)
            screen.cache.clear()
            screen.refresh()
            assert screen.get(order.id) == order


class TestClose:
    def test_close_unsubscribes_and_stops_updates(self, store, seed, session_for, vendor):
        screen = VendorOrdersScreen(store, session_for(vendor)).open()
        screen.close()
        seed(OrderStatus.PENDING)
        assert store.subscription_count == 0
        assert screen.orders() == []
        screen.close()  # idempotent

    def test_closed_screen_cannot_reopen(self, store, session_for, vendor):
        screen = VendorOrdersScreen(store, session_for(vendor)).open()
        screen.close()
        with pytest.raises(RuntimeError, match="cannot be reopened"):
            screen.open()

    def test_act_requires_open(self, store, seed, session_for, vendor):
        order = seed(OrderStatus.PENDING)
        screen = VendorOrdersScreen(store, session_for(vendor))
        with pytest.raises(RuntimeError, match="not open"):
            screen.accept(order.id)
