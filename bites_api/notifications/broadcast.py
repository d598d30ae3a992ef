"""Live admin dashboard broadcast over Redis pub/sub"""

import json
from typing import Optional

from redis.asyncio import Redis
import structlog

from bites_api.config import settings
from bites_api.schemas.order import OrderResponse

logger = structlog.get_logger()


def admin_order_payload(order: OrderResponse) -> dict:
    """Order snapshot with the display fields the dashboard renders"""
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "delivery_address": order.delivery_address,
        "delivery_latitude": order.delivery_latitude,
        "delivery_longitude": order.delivery_longitude,
        "subtotal": str(order.subtotal),
        "delivery_fee": str(order.delivery_fee),
        "total": str(order.total),
        "items_count": len(order.items),
        "items": [
            {
                "product_name": item.product_name,
                "size": item.size,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
                "total_price": str(item.total_price),
                "addons": [addon.addon_name for addon in item.addons],
            }
            for item in order.items
        ],
        "status": order.status.value,
        "status_label": order.status.label,
        "order_type": order.order_type.value,
        "order_type_label": order.order_type.label,
        "payment_method": order.payment_method.value,
        "notes": order.notes,
        "estimated_ready_time": (
            order.estimated_ready_time.isoformat() if order.estimated_ready_time else None
        ),
        "created_at": order.created_at.isoformat(),
    }


class AdminBroadcastPublisher:
    """Publishes new orders to the admin channel. No retries; failures are
    logged and never reach the order caller.
    """

    def __init__(
        self,
        redis: Optional[Redis] = None,
        channel: Optional[str] = None,
        event_name: Optional[str] = None,
    ):
        self._redis = redis
        self.channel = channel or settings.admin_channel
        self.event_name = event_name or settings.admin_event_name

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(settings.redis_url, decode_responses=True)
        return self._redis

    async def publish_order_created(self, order: OrderResponse) -> bool:
        message = json.dumps({"event": self.event_name, "data": admin_order_payload(order)})
        try:
            receivers = await self.redis.publish(self.channel, message)
        except Exception as e:
            logger.error(
                "Admin broadcast failed",
                channel=self.channel,
                order_number=order.order_number,
                error=str(e),
            )
            return False

        logger.info(
            "Admin broadcast sent",
            channel=self.channel,
            order_number=order.order_number,
            receivers=receivers,
        )
        return True

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
