"""Root conftest for the FOODFLOW test suite."""

from __future__ import annotations

import sys
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from foodflow.core.types import ActorRole, OrderStatus  # noqa: E402
from foodflow.models.actor import Actor  # noqa: E402
from foodflow.models.order import LineItem, Order  # noqa: E402
from foodflow.services.identity import Session, StaticIdentity  # noqa: E402
from foodflow.store.memory import MemoryOrderStore  # noqa: E402

# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "database": {"database": "foodflow_test", "user": "testuser"},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# ConfigKit singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the FoodflowConfig singleton and session binding around every test."""
    from foodflow.config.foodflow_config import FoodflowConfig
    from foodflow.logging import bind_session

    FoodflowConfig.reset()
    yield
    FoodflowConfig.reset()
    bind_session(None)


# ---------------------------------------------------------------------------
# Actors, sessions and orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def vendor() -> Actor:
    return Actor(id=uuid.uuid4(), role=ActorRole.VENDOR)


@pytest.fixture()
def customer() -> Actor:
    return Actor(id=uuid.uuid4(), role=ActorRole.CUSTOMER)


@pytest.fixture()
def deliverer() -> Actor:
    return Actor(id=uuid.uuid4(), role=ActorRole.DELIVERER)


@pytest.fixture()
def other_deliverer() -> Actor:
    return Actor(id=uuid.uuid4(), role=ActorRole.DELIVERER)


@pytest.fixture()
def session_for():
    """Factory: ``session_for(actor)`` returns a :class:`Session` for *actor*."""

    def _make(actor: Actor) -> Session:
        return Session(StaticIdentity(actor))

    return _make


@pytest.fixture()
def store():
    s = MemoryOrderStore()
    yield s
    s.close()


_BASE_TIME = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.fixture()
def make_order(customer, vendor):
    """Factory for :class:`Order` values with sensible defaults.

    Successive orders get increasing ``created_at`` so newest-first
    ordering is deterministic.
    """
    counter = {"n": 0}

    def _make(status: OrderStatus = OrderStatus.PENDING, **overrides) -> Order:
        counter["n"] += 1
        fields = {
            "id": uuid.uuid4(),
            "customer_id": customer.id,
            "vendor_id": vendor.id,
            "status": status,
            "items": (
                LineItem("p-1", "Chicken Adobo", Decimal("150.00"), 2),
                LineItem("p-2", "Halo-Halo", Decimal("80.00"), 1),
            ),
            "total_price": Decimal("430.00"),
            "delivery_fee": Decimal("50.00"),
            "delivery_address": "12 Mabini St, Quezon City",
            "created_at": _BASE_TIME + timedelta(minutes=counter["n"]),
        }
        fields.update(overrides)
        return Order(**fields)

    return _make


@pytest.fixture()
def seed(store, make_order):
    """Factory: create an order in the memory store and return the stored row."""

    def _seed(status: OrderStatus = OrderStatus.PENDING, **overrides) -> Order:
        return store.create_order(make_order(status, **overrides))

    return _seed
