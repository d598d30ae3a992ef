"""Tests for notification scheduling and the Celery delivery task"""

import asyncio

import pytest

from bites_api.config import settings
from bites_api.jobs import tasks
from bites_api.notifications import scheduler as scheduler_module
from bites_api.notifications.scheduler import NotificationScheduler
from bites_api.orders.events import EventBus, OrderCreated, OrderStatusChanged, event_from_dict
from bites_api.orders.status import OrderStatus
from bites_api.schemas.order import OrderResponse


def _snapshot(**overrides):
    data = dict(
        id="6f1c1a3e-8a43-4f55-9d1a-2b7d3c9e0a11",
        order_number="000001",
        customer_name="Sipho Dlamini",
        customer_phone="0731234567",
        order_type="collection",
        delivery_address="Collect at store",
        subtotal="45.00",
        delivery_fee="0.00",
        total="45.00",
        status="confirmed",
        payment_method="cash",
        created_at="2026-03-14T12:00:00",
    )
    data.update(overrides)
    return OrderResponse.model_validate(data)


class SlowRouter:
    """Router stand-in whose handling outlives the publishing call"""

    def __init__(self):
        self.handled = []
        self.closed = False

    async def handle(self, event):
        await asyncio.sleep(0.01)
        self.handled.append(event)
        return {}

    async def close(self):
        self.closed = True


class FakeTask:
    def __init__(self):
        self.payloads = []

    def delay(self, payload):
        self.payloads.append(payload)


@pytest.fixture
async def status_event(test_db, lifecycle, make_cart, recorder):
    order = await lifecycle.create_order(test_db, make_cart())
    await lifecycle.transition_status(test_db, order.id, OrderStatus.CONFIRMED)
    return recorder.events[-1]


def test_rejects_unknown_backend():
    with pytest.raises(ValueError):
        NotificationScheduler(router=SlowRouter(), backend="carrier-pigeon")


def test_background_backend_needs_router():
    with pytest.raises(ValueError):
        NotificationScheduler(backend="background")


@pytest.mark.asyncio
async def test_background_schedule_returns_before_delivery(status_event):
    router = SlowRouter()
    scheduler = NotificationScheduler(router=router, backend="background")
    bus = EventBus()
    scheduler.attach(bus)

    bus.publish(status_event)

    assert router.handled == []
    assert scheduler.pending == 1

    await scheduler.drain()

    assert router.handled == [status_event]
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_attach_subscribes_both_events():
    scheduler = NotificationScheduler(router=SlowRouter(), backend="background")
    bus = EventBus()
    scheduler.attach(bus)

    assert bus.subscribers(OrderCreated) == [scheduler.schedule]
    assert bus.subscribers(OrderStatusChanged) == [scheduler.schedule]


@pytest.mark.asyncio
async def test_celery_backend_enqueues_json(status_event, monkeypatch):
    task = FakeTask()
    monkeypatch.setattr(tasks, "deliver_order_event", task)
    scheduler = NotificationScheduler(backend="celery")

    scheduler.schedule(status_event)

    payload = task.payloads[0]
    assert payload["type"] == "order_status_changed"
    assert payload["new_status"] == "confirmed"
    assert payload["order"]["total"] == "110.00"
    assert event_from_dict(payload) == status_event


def test_unknown_event_type():
    with pytest.raises(ValueError):
        event_from_dict({"type": "order_eaten"})


def test_bus_contains_subscriber_failures():
    seen = []
    bus = EventBus()

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(OrderStatusChanged, broken)
    bus.subscribe(OrderStatusChanged, seen.append)

    event = OrderStatusChanged(
        order=_snapshot(),
        old_status=OrderStatus.PENDING,
        new_status=OrderStatus.CONFIRMED,
    )
    bus.publish(event)

    assert seen == [event]


def test_celery_task_routes_event(monkeypatch):
    event = OrderStatusChanged(
        order=_snapshot(),
        old_status=OrderStatus.PENDING,
        new_status=OrderStatus.CONFIRMED,
    )
    router = SlowRouter()
    monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setattr(scheduler_module, "build_notification_router", lambda session_factory: router)

    tasks.deliver_order_event(event.model_dump(mode="json"))

    assert len(router.handled) == 1
    assert router.handled[0] == event
    assert router.closed


def test_celery_redelivers_when_worker_dies():
    from bites_api.jobs.celery_app import celery_app

    assert celery_app.conf.task_acks_late is True
    assert celery_app.conf.task_reject_on_worker_lost is True
    assert celery_app.conf.task_routes["deliver_order_event"] == {"queue": "notifications"}
