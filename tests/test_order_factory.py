"""Tests for order construction"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from bites_api.models.order import Order
from bites_api.orders import factory as factory_module
from bites_api.orders.errors import CodeGenerationExhausted
from bites_api.orders.factory import OrderFactory, delivery_fee_for, estimate_ready_time
from bites_api.orders.lifecycle import LifecycleService
from bites_api.orders.status import OrderStatus, OrderType


NOW = datetime(2026, 3, 14, 12, 0, 0)


class ScriptedRandom:
    """Returns the given draws in order, repeating the last one"""

    def __init__(self, *values):
        self.values = list(values)

    def randint(self, a, b):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


@pytest.mark.parametrize(
    "quantity,minutes",
    [(1, 32), (2, 34), (7, 44), (8, 45), (20, 45)],
)
def test_estimate_ready_time(quantity, minutes):
    assert estimate_ready_time(quantity, NOW) == NOW + timedelta(minutes=minutes)


def test_delivery_fee():
    assert delivery_fee_for(OrderType.DELIVERY, Decimal("30")) == Decimal("30.00")
    assert delivery_fee_for(OrderType.COLLECTION, Decimal("30")) == Decimal("0.00")


def test_order_number_format():
    factory = OrderFactory(rng=ScriptedRandom(42))
    assert factory.draw_order_number() == "000042"


@pytest.mark.asyncio
async def test_build_does_not_commit(test_db, make_cart, order_factory):
    order = await order_factory.build(test_db, make_cart())

    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("80.00")
    assert order.total == Decimal("110.00")
    assert order.created_at == NOW
    assert order.estimated_ready_time == NOW + timedelta(minutes=34)
    assert [h.notes for h in order.status_history] == ["Order placed"]
    assert test_db.in_transaction()

    await test_db.rollback()


@pytest.mark.asyncio
async def test_order_number_collision_redraws(test_db, make_cart, event_bus, clock):
    first = LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(123456)), bus=event_bus
    )
    second = LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(123456, 654321)), bus=event_bus
    )

    a = await first.create_order(test_db, make_cart())
    b = await second.create_order(test_db, make_cart())

    assert a.order_number == "123456"
    assert b.order_number == "654321"


@pytest.mark.asyncio
async def test_order_number_exhaustion(test_db, make_cart, event_bus, clock):
    await LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(7)), bus=event_bus
    ).create_order(test_db, make_cart())

    stuck = LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(7), max_code_attempts=3),
        bus=event_bus,
    )
    with pytest.raises(CodeGenerationExhausted) as exc:
        await stuck.create_order(test_db, make_cart())

    assert exc.value.attempts == 3
    assert exc.value.status_code == 500


async def _never_taken(db, order_number):
    return False


@pytest.mark.asyncio
async def test_unique_constraint_conflict_retries(test_db, make_cart, event_bus, clock, monkeypatch):
    first = await LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(111111)), bus=event_bus
    ).create_order(test_db, make_cart())
    first_number = first.order_number

    # Skip the pre-check so the duplicate reaches the insert
    monkeypatch.setattr(factory_module, "order_number_exists", _never_taken)
    second = await LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(111111, 222222)), bus=event_bus
    ).create_order(test_db, make_cart())

    assert first_number == "111111"
    assert second.order_number == "222222"


@pytest.mark.asyncio
async def test_unique_constraint_conflict_gives_up(test_db, make_cart, event_bus, clock, monkeypatch, recorder):
    await LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(111111)), bus=event_bus
    ).create_order(test_db, make_cart())

    monkeypatch.setattr(factory_module, "order_number_exists", _never_taken)
    stuck = LifecycleService(
        factory=OrderFactory(clock=clock, rng=ScriptedRandom(111111)), bus=event_bus
    )
    with pytest.raises(IntegrityError):
        await stuck.create_order(test_db, make_cart())

    result = await test_db.execute(select(func.count()).select_from(Order))
    assert result.scalar() == 1
    assert len(recorder.events) == 1
