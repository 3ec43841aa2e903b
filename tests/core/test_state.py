"""Unit tests for foodflow.core.state: the order status graph and actor rules."""

from __future__ import annotations

import logging

import pytest

from foodflow.core.state import (
    ACTOR_RULES,
    ORDER_TRANSITIONS,
    PRE_ASSIGNMENT_STATUSES,
    TERMINAL_STATUSES,
    find_rule,
    log_transition,
    targets_for_role,
)
from foodflow.core.types import ActorRole, GuardKind, OrderStatus

# ---------------------------------------------------------------------------
# TestOrderTransitions
# ---------------------------------------------------------------------------


class TestOrderTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.CREATED, OrderStatus.PENDING),
            (OrderStatus.PENDING, OrderStatus.PREPARING),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.PREPARING, OrderStatus.READY),
            (OrderStatus.READY, OrderStatus.ASSIGNED),
            (OrderStatus.ASSIGNED, OrderStatus.PICKED_UP),
            (OrderStatus.PICKED_UP, OrderStatus.ON_THE_WAY),
            (OrderStatus.PICKED_UP, OrderStatus.DELIVERED),
            (OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.COMPLETED),
        ],
    )
    def test_valid_transitions(self, current, target):
        assert target in ORDER_TRANSITIONS[current]

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_states_reject_everything(self, terminal):
        assert ORDER_TRANSITIONS[terminal] == frozenset()
        for role in ActorRole:
            for target in OrderStatus:
                assert find_rule(role, terminal, target) is None

    def test_terminal_statuses(self):
        assert frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}) == TERMINAL_STATUSES

    def test_no_cancel_after_acceptance(self):
        for source in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.ASSIGNED):
            assert OrderStatus.CANCELLED not in ORDER_TRANSITIONS[source]

    def test_every_status_has_an_entry(self):
        assert set(ORDER_TRANSITIONS) == set(OrderStatus)

    def test_pre_assignment_statuses(self):
        assert OrderStatus.READY in PRE_ASSIGNMENT_STATUSES
        assert OrderStatus.ASSIGNED not in PRE_ASSIGNMENT_STATUSES


# ---------------------------------------------------------------------------
# TestActorRules
# ---------------------------------------------------------------------------


class TestActorRules:
    def test_every_rule_is_an_edge_of_the_graph(self):
        for rule in ACTOR_RULES:
            for source in rule.sources:
                assert rule.target in ORDER_TRANSITIONS[source], (source, rule.target)

    def test_every_edge_has_a_rule(self):
        for source, targets in ORDER_TRANSITIONS.items():
            for target in targets:
                assert any(
                    find_rule(role, source, target) is not None for role in ActorRole
                ), f"{source} -> {target} has no actor"

    def test_claim_uses_unassigned_guard(self):
        rule = find_rule(ActorRole.DELIVERER, OrderStatus.READY, OrderStatus.ASSIGNED)
        assert rule is not None
        assert rule.guard is GuardKind.UNASSIGNED
        assert rule.is_claim

    def test_only_the_claim_is_unassigned_guarded(self):
        claims = [r for r in ACTOR_RULES if r.guard is GuardKind.UNASSIGNED]
        assert len(claims) == 1

    @pytest.mark.parametrize(
        "role,owner",
        [
            (ActorRole.VENDOR, "vendor_id"),
            (ActorRole.DELIVERER, "deliverer_id"),
            (ActorRole.CUSTOMER, "customer_id"),
        ],
    )
    def test_owner_field_per_role(self, role, owner):
        rule = next(r for r in ACTOR_RULES if r.role is role)
        assert rule.owner_field == owner

    @pytest.mark.parametrize("role", [ActorRole.VENDOR, ActorRole.DELIVERER])
    def test_completion_requires_payment_and_stamps(self, role):
        rule = find_rule(role, OrderStatus.DELIVERED, OrderStatus.COMPLETED)
        assert rule is not None
        assert rule.requires_payment
        assert rule.stamps == "completed_at"

    def test_customer_cannot_complete(self):
        assert find_rule(ActorRole.CUSTOMER, OrderStatus.DELIVERED, OrderStatus.COMPLETED) is None

    def test_vendor_cannot_claim(self):
        assert find_rule(ActorRole.VENDOR, OrderStatus.READY, OrderStatus.ASSIGNED) is None

    def test_vendor_decline_only_from_pending(self):
        assert find_rule(ActorRole.VENDOR, OrderStatus.PENDING, OrderStatus.CANCELLED)
        assert find_rule(ActorRole.VENDOR, OrderStatus.CREATED, OrderStatus.CANCELLED) is None

    def test_customer_cancel_before_acceptance(self):
        for source in (OrderStatus.CREATED, OrderStatus.PENDING):
            assert find_rule(ActorRole.CUSTOMER, source, OrderStatus.CANCELLED)
        assert find_rule(ActorRole.CUSTOMER, OrderStatus.PREPARING, OrderStatus.CANCELLED) is None

    def test_targets_for_role(self):
        assert targets_for_role(ActorRole.CUSTOMER) == frozenset(
            {OrderStatus.PENDING, OrderStatus.CANCELLED}
        )
        assert OrderStatus.ASSIGNED in targets_for_role(ActorRole.DELIVERER)
        assert OrderStatus.ASSIGNED not in targets_for_role(ActorRole.VENDOR)


# ---------------------------------------------------------------------------
# TestLogTransition
# ---------------------------------------------------------------------------


class TestLogTransition:
    def test_emits_structured_record(self, caplog):
        with caplog.at_level(logging.INFO, logger="foodflow.core.state"):
            log_transition("order-1", OrderStatus.READY, OrderStatus.ASSIGNED, actor_id="d-1")
        record = caplog.records[-1]
        assert "ready" in record.getMessage()
        assert "assigned" in record.getMessage()
