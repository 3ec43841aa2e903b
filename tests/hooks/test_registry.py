"""Tests for foodflow.hooks.registry."""

from __future__ import annotations

import logging
import uuid
from unittest.mock import patch

import pytest

from foodflow.config.settings import HookSettings
from foodflow.hooks.events import KNOWN_EVENTS
from foodflow.hooks.registry import HookRegistry, load_hook_class
from foodflow.hooks.webhook_hook import OrderWebhookHook


def _transition_ctx(order_id=None) -> dict:
    oid = str(order_id or uuid.uuid4())
    return {
        "order_id": oid,
        "from_status": "pending",
        "to_status": "preparing",
        "actor_id": str(uuid.uuid4()),
        "actor_role": "vendor",
        "order": {"id": oid, "status": "preparing"},
    }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadHookClass:
    def test_real_class_path(self):
        assert load_hook_class("foodflow.hooks.webhook_hook.OrderWebhookHook") is OrderWebhookHook

    @pytest.mark.parametrize("path", ["OrderWebhookHook", "foodflow..Hook", "foodflow.hooks.9x"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError, match="package.module.ClassName"):
            load_hook_class(path)

    def test_missing_module(self):
        with pytest.raises(ModuleNotFoundError):
            load_hook_class("foodflow.no_such_module.Hook")

    def test_not_a_hook(self):
        with pytest.raises(TypeError, match="not a foodflow.hooks.Hook subclass"):
            load_hook_class("foodflow.hooks.registry.HookRegistry")


class TestRegistration:
    def test_no_hooks_means_no_pool(self):
        registry = HookRegistry(HookSettings(10, 2, 0, ()))
        assert registry.hooks() == []
        assert registry.dispatch("order.transition", _transition_ctx()) == 0
        registry.shutdown()

    def test_disabled_entry_skipped(self, make_registry, entry):
        registry = make_registry(entry(enabled=False))
        assert registry.hooks() == []
        assert registry.subscribers("order.completion") == []

    def test_no_events_means_all_four(self, make_registry, entry):
        registry = make_registry(entry())
        for event in KNOWN_EVENTS:
            assert registry.subscribers(event) == ["kitchen_hooks.TicketPrinterHook"]

    def test_event_subset(self, make_registry, entry):
        registry = make_registry(entry(events=("order.completion",)))
        assert registry.subscribers("order.completion") == ["kitchen_hooks.TicketPrinterHook"]
        assert registry.subscribers("order.rollback") == []

    def test_unknown_event_refused(self, make_registry, entry):
        with pytest.raises(ValueError, match="unknown events"):
            make_registry(entry(events=("order.refunded",)))

    def test_config_validated_before_use(self, make_registry, entry):
        with pytest.raises(ValueError, match="station is required"):
            make_registry(entry("StationHook"))
        registry = make_registry(entry("StationHook", config={"station": "grill"}))
        assert registry.hooks()[0].config == {"station": "grill"}

    def test_non_hook_class_refused(self, make_registry, entry):
        with pytest.raises(TypeError):
            make_registry(entry("NotAHook"))

    def test_registration_order_kept(self, make_registry, entry):
        registry = make_registry(entry("StationHook", config={"station": "bar"}), entry())
        assert registry.subscribers("order.transition") == [
            "kitchen_hooks.StationHook",
            "kitchen_hooks.TicketPrinterHook",
        ]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_unknown_event_rejected(self, make_registry, entry):
        registry = make_registry(entry())
        with pytest.raises(ValueError, match="Unknown hook event"):
            registry.dispatch("order.refunded", {})

    def test_each_event_reaches_its_method(self, make_registry, entry):
        registry = make_registry(entry())
        for event in sorted(KNOWN_EVENTS):
            assert registry.dispatch(event, {"order_id": "o-1"}) == 1
        registry.shutdown(wait=True)
        methods = sorted(method for method, _ in registry.hooks()[0].received)
        assert methods == ["claim_lost", "completion", "rollback", "transition"]

    def test_only_subscribers_are_scheduled(self, make_registry, entry):
        registry = make_registry(entry(events=("order.completion",)), entry())
        assert registry.dispatch("order.rollback", {"order_id": "o-1"}) == 1
        assert registry.dispatch("order.completion", {"order_id": "o-1"}) == 2

    def test_caller_context_untouched(self, make_registry, entry):
        registry = make_registry(entry("ScribblingHook"))
        ctx = _transition_ctx()
        before = {**ctx, "order": dict(ctx["order"])}
        registry.dispatch("order.transition", ctx)
        registry.shutdown(wait=True)
        assert ctx == before

    def test_hooks_do_not_share_a_context(self, make_registry, entry):
        registry = make_registry(entry("ScribblingHook"), entry())
        registry.dispatch("order.transition", _transition_ctx())
        registry.shutdown(wait=True)
        _, seen = registry.hooks()[1].received[0]
        assert "scribbled" not in seen
        assert seen["order"]["status"] == "preparing"

    def test_nothing_scheduled_after_shutdown(self, make_registry, entry):
        registry = make_registry(entry())
        registry.shutdown(wait=True)
        assert registry.closed
        assert registry.dispatch("order.transition", _transition_ctx()) == 0
        assert registry.hooks()[0].received == []

    def test_submit_on_closed_pool_is_logged(self, make_registry, entry, caplog):
        registry = make_registry(entry())
        registry._pool.shutdown(wait=True)
        with caplog.at_level(logging.WARNING, logger="foodflow.hooks.registry"):
            assert registry.dispatch("order.completion", {"order_id": "o-1"}) == 0
        assert "not delivered" in caplog.text


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class TestDelivery:
    def test_failure_logged_with_order_id(self, make_registry, entry, caplog):
        registry = make_registry(entry("BrokenPrinterHook"))
        with caplog.at_level(logging.ERROR, logger="foodflow.hooks.registry"):
            registry.dispatch("order.completion", {"order_id": "o-42"})
            registry.shutdown(wait=True)
        assert "o-42" in caplog.text
        assert "printer offline" in caplog.text

    def test_failing_hook_does_not_block_others(self, make_registry, entry):
        registry = make_registry(entry("BrokenPrinterHook"), entry())
        registry.dispatch("order.transition", _transition_ctx())
        registry.shutdown(wait=True)
        assert len(registry.hooks()[1].received) == 1

    def test_retries_with_doubling_delay(self, make_registry, entry):
        registry = make_registry(entry("JammedPrinterHook", config={"jams": 2}), max_retries=2)
        with patch("foodflow.hooks.registry.time.sleep") as sleep:
            registry.dispatch("order.completion", {"order_id": "o-1"})
            registry.shutdown(wait=True)
        assert registry.hooks()[0].printed == 1
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    def test_gives_up_after_max_retries(self, make_registry, entry, caplog):
        registry = make_registry(entry("JammedPrinterHook", config={"jams": 5}), max_retries=1)
        with (
            patch("foodflow.hooks.registry.time.sleep"),
            caplog.at_level(logging.ERROR, logger="foodflow.hooks.registry"),
        ):
            registry.dispatch("order.completion", {"order_id": "o-1"})
            registry.shutdown(wait=True)
        assert registry.hooks()[0].printed == 0
        assert "after 2 attempt(s)" in caplog.text

    def test_slow_hook_warns(self, make_registry, entry, caplog):
        registry = make_registry(entry(timeout_seconds=5))
        subscriber = registry._subscribers["order.completion"][0]
        with (
            patch("foodflow.hooks.registry.time.monotonic", side_effect=[0.0, 7.5]),
            caplog.at_level(logging.WARNING, logger="foodflow.hooks.registry"),
        ):
            registry._deliver(subscriber, "order.completion", {"order_id": "o-1"})
        assert "took 7.5s" in caplog.text

    def test_entry_timeout_falls_back_to_section(self, make_registry, entry):
        registry = make_registry(entry(), timeout_seconds=30)
        assert registry._subscribers["order.rollback"][0].slow_after == 30.0


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_shutdown_is_idempotent(self, make_registry, entry):
        registry = make_registry(entry())
        registry.shutdown(wait=True)
        registry.shutdown(wait=True)
        assert registry.closed

    def test_context_manager_drains_pool(self, make_registry, entry):
        registry = make_registry(entry())
        with registry as hooks:
            hooks.dispatch("order.transition", _transition_ctx())
        assert registry.closed
        assert len(registry.hooks()[0].received) == 1

    def test_shutdown_passes_wait_through(self, make_registry, entry):
        registry = make_registry(entry())
        with patch.object(registry._pool, "shutdown") as pool_shutdown:
            registry.shutdown(wait=False)
        pool_shutdown.assert_called_once_with(wait=False)


class TestWithScreens:
    def test_accept_reaches_subscribed_hook(
        self, make_registry, entry, store, seed, session_for, vendor
    ):
        from foodflow.core.types import OrderStatus
        from foodflow.screens.vendor import VendorOrdersScreen

        order = seed(OrderStatus.PENDING)
        registry = make_registry(entry(events=("order.transition",)))
        with (
            registry as hooks,
            VendorOrdersScreen(store, session_for(vendor), hooks=hooks) as board,
        ):
            assert board.accept(order.id).ok
        [(method, ctx)] = registry.hooks()[0].received
        assert method == "transition"
        assert ctx["order_id"] == str(order.id)
        assert (ctx["from_status"], ctx["to_status"]) == ("pending", "preparing")
