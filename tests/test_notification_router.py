"""Tests for recipient resolution and event routing"""

import pytest
from datetime import timedelta

from bites_api.models.notification import DeviceToken, WebPushSubscription
from bites_api.notifications.router import NotificationRouter
from bites_api.notifications.templates import TEMPLATES, compose_status_payload
from bites_api.orders.events import OrderCreated
from bites_api.orders.status import OrderStatus
from bites_api.schemas.notification import DispatchReport


class FakeDispatcher:
    """Records each batch instead of sending"""

    def __init__(self, channel, endpoint_attr):
        self.channel = channel
        self.endpoint_attr = endpoint_attr
        self.calls = []
        self.closed = False

    async def dispatch(self, recipients, payload):
        self.calls.append((list(recipients), payload))
        endpoints = [getattr(r, self.endpoint_attr) for r in recipients]
        return DispatchReport(channel=self.channel, attempted=len(endpoints), delivered=endpoints)

    def close(self):
        self.closed = True


class FakeBroadcaster:
    def __init__(self, fail=False):
        self.published = []
        self.fail = fail
        self.closed = False

    async def publish_order_created(self, order):
        if self.fail:
            raise RuntimeError("redis down")
        self.published.append(order)
        return True

    async def close(self):
        self.closed = True


@pytest.fixture
def mobile():
    return FakeDispatcher("expo", "token")


@pytest.fixture
def web():
    return FakeDispatcher("webpush", "endpoint")


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def router(session_factory, mobile, web, broadcaster):
    return NotificationRouter(
        session_factory=session_factory,
        mobile=mobile,
        web=web,
        broadcaster=broadcaster,
        guest_window_hours=24,
    )


async def _status_event(db, lifecycle, cart, recorder, user_id=None):
    order = await lifecycle.create_order(db, cart, user_id=user_id)
    await lifecycle.transition_status(db, order.id, OrderStatus.CONFIRMED)
    return recorder.events[-1]


@pytest.mark.asyncio
async def test_order_created_only_broadcasts(test_db, lifecycle, make_cart, recorder, router, broadcaster, mobile, web):
    await lifecycle.create_order(test_db, make_cart())
    event = recorder.events[-1]
    assert isinstance(event, OrderCreated)

    reports = await router.handle(event)

    assert reports == {}
    assert [o.order_number for o in broadcaster.published] == [event.order.order_number]
    assert mobile.calls == []
    assert web.calls == []


@pytest.mark.asyncio
async def test_no_recipients_skips_dispatch(test_db, lifecycle, make_cart, recorder, router, mobile, web):
    event = await _status_event(test_db, lifecycle, make_cart(), recorder)

    reports = await router.handle(event)

    assert reports == {}
    assert mobile.calls == []
    assert web.calls == []


@pytest.mark.asyncio
async def test_owner_endpoints(test_db, lifecycle, make_cart, recorder, router, mobile, web, test_user):
    test_db.add_all([
        DeviceToken(token="ExponentPushToken[owner]", user_id=test_user.id),
        DeviceToken(token="ExponentPushToken[guest]", user_id=None),
        WebPushSubscription(
            endpoint="https://push.example.com/owner",
            p256dh_key="p256",
            auth_key="auth",
            user_id=test_user.id,
        ),
    ])
    await test_db.commit()

    event = await _status_event(test_db, lifecycle, make_cart(), recorder, user_id=test_user.id)
    reports = await router.handle(event)

    assert set(reports) == {"expo", "webpush"}
    assert [r.token for r in mobile.calls[0][0]] == ["ExponentPushToken[owner]"]
    assert [r.endpoint for r in web.calls[0][0]] == ["https://push.example.com/owner"]


@pytest.mark.asyncio
async def test_guest_window(test_db, lifecycle, make_cart, recorder, router, mobile, web, clock, test_user):
    test_db.add_all([
        DeviceToken(token="recent", user_id=None, created_at=clock.now - timedelta(hours=2)),
        DeviceToken(token="stale", user_id=None, created_at=clock.now - timedelta(hours=30)),
        DeviceToken(token="owned", user_id=test_user.id, created_at=clock.now),
    ])
    await test_db.commit()

    event = await _status_event(test_db, lifecycle, make_cart(), recorder)
    reports = await router.handle(event)

    assert list(reports) == ["expo"]
    assert [r.token for r in mobile.calls[0][0]] == ["recent"]
    assert web.calls == []


@pytest.mark.asyncio
async def test_status_payload(test_db, lifecycle, make_cart, recorder, router, mobile):
    test_db.add(DeviceToken(token="recent", user_id=None))
    await test_db.commit()

    event = await _status_event(test_db, lifecycle, make_cart(), recorder)
    await router.handle(event)

    payload = mobile.calls[0][1]
    assert payload.title == "Order Confirmed!"
    assert payload.body == f"Your order #{event.order.order_number} has been confirmed."
    assert payload.data == {
        "type": "order_status_update",
        "status": "confirmed",
        "order_number": event.order.order_number,
    }


@pytest.mark.asyncio
async def test_handle_never_raises(test_db, lifecycle, make_cart, recorder, session_factory, mobile, web):
    router = NotificationRouter(session_factory, mobile, web, FakeBroadcaster(fail=True))
    await lifecycle.create_order(test_db, make_cart())

    assert await router.handle(recorder.events[-1]) == {}


@pytest.mark.asyncio
async def test_close_releases_channels(router, mobile, web, broadcaster):
    await router.close()

    assert mobile.closed and web.closed and broadcaster.closed


def test_every_status_has_a_template():
    assert set(TEMPLATES) == set(OrderStatus)


@pytest.mark.asyncio
async def test_out_for_delivery_mentions_eta(test_db, lifecycle, make_cart, recorder):
    await lifecycle.create_order(test_db, make_cart())
    order = recorder.events[-1].order

    payload = compose_status_payload(order, OrderStatus.OUT_FOR_DELIVERY)

    assert payload.title == "On The Way!"
    assert payload.body.endswith(
        f"Estimated arrival: {order.estimated_ready_time.strftime('%H:%M')}"
    )
