"""Pydantic schemas for request/response validation"""

from bites_api.schemas.order import (
    CartLine,
    OrderCreate,
    OrderStatusUpdate,
    OrderResponse,
    OrderEnvelope,
    OrderListResponse,
)
from bites_api.schemas.notification import (
    DeviceTokenCreate,
    DeviceTokenDelete,
    WebPushSubscribe,
    WebPushUnsubscribe,
    PushPayload,
    DispatchReport,
)

__all__ = [
    "CartLine",
    "OrderCreate",
    "OrderStatusUpdate",
    "OrderResponse",
    "OrderEnvelope",
    "OrderListResponse",
    "DeviceTokenCreate",
    "DeviceTokenDelete",
    "WebPushSubscribe",
    "WebPushUnsubscribe",
    "PushPayload",
    "DispatchReport",
]
