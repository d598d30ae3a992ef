"""Tests for the admin dashboard broadcast"""

import json

import pytest

from bites_api.notifications.broadcast import AdminBroadcastPublisher, admin_order_payload


class FakeRedis:
    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail
        self.closed = False

    async def publish(self, channel, message):
        if self.fail:
            raise ConnectionError("Error 111 connecting to localhost:6379")
        self.messages.append((channel, message))
        return 1

    async def aclose(self):
        self.closed = True


@pytest.fixture
async def created_order(test_db, lifecycle, make_cart, recorder):
    await lifecycle.create_order(test_db, make_cart(notes="Extra salt"))
    return recorder.events[-1].order


@pytest.mark.asyncio
async def test_publishes_new_order(created_order):
    redis = FakeRedis()
    publisher = AdminBroadcastPublisher(redis=redis, channel="admin-notifications", event_name="new-order")

    assert await publisher.publish_order_created(created_order) is True

    channel, message = redis.messages[0]
    assert channel == "admin-notifications"
    envelope = json.loads(message)
    assert envelope["event"] == "new-order"

    data = envelope["data"]
    assert data["order_number"] == created_order.order_number
    assert data["total"] == "110.00"
    assert data["items_count"] == 1
    assert data["items"][0]["addons"] == ["Cheese"]
    assert data["status"] == "pending"
    assert data["status_label"] == "Pending"
    assert data["order_type_label"] == "Delivery"
    assert data["payment_method"] == "cash"
    assert data["notes"] == "Extra salt"


@pytest.mark.asyncio
async def test_failure_is_contained(created_order):
    publisher = AdminBroadcastPublisher(redis=FakeRedis(fail=True))

    assert await publisher.publish_order_created(created_order) is False


@pytest.mark.asyncio
async def test_close(created_order):
    redis = FakeRedis()
    publisher = AdminBroadcastPublisher(redis=redis)

    await publisher.close()

    assert redis.closed


@pytest.mark.asyncio
async def test_payload_is_json_serializable(created_order):
    payload = admin_order_payload(created_order)

    assert json.loads(json.dumps(payload))["created_at"] == created_order.created_at.isoformat()
