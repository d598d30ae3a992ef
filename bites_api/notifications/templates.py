"""Customer-facing status notification templates"""

from typing import Callable, Dict, Tuple

from bites_api.orders.status import OrderStatus
from bites_api.schemas.notification import PushPayload
from bites_api.schemas.order import OrderResponse

NOTIFICATION_TYPE = "order_status_update"


def _eta(order: OrderResponse) -> str:
    if order.estimated_ready_time is None:
        return "soon"
    return order.estimated_ready_time.strftime("%H:%M")


# status -> (title, body builder)
TEMPLATES: Dict[OrderStatus, Tuple[str, Callable[[OrderResponse], str]]] = {
    OrderStatus.PENDING: (
        "Order Received",
        lambda o: f"Your order #{o.order_number} has been received.",
    ),
    OrderStatus.CONFIRMED: (
        "Order Confirmed!",
        lambda o: f"Your order #{o.order_number} has been confirmed.",
    ),
    OrderStatus.PREPARING: (
        "Preparing Your Order",
        lambda o: f"We're preparing your order #{o.order_number}!",
    ),
    OrderStatus.READY: (
        "Order Ready!",
        lambda o: f"Your order #{o.order_number} is ready.",
    ),
    OrderStatus.OUT_FOR_DELIVERY: (
        "On The Way!",
        lambda o: f"Your order #{o.order_number} is on its way! Estimated arrival: {_eta(o)}",
    ),
    OrderStatus.DELIVERED: (
        "Order Delivered",
        lambda o: f"Your order #{o.order_number} has been delivered. Enjoy!",
    ),
    OrderStatus.CANCELLED: (
        "Order Cancelled",
        lambda o: f"Your order #{o.order_number} has been cancelled.",
    ),
}


def compose_status_payload(order: OrderResponse, status: OrderStatus) -> PushPayload:
    title, body = TEMPLATES[OrderStatus(status)]
    return PushPayload(
        title=title,
        body=body(order),
        data={
            "type": NOTIFICATION_TYPE,
            "status": OrderStatus(status).value,
            "order_number": order.order_number,
        },
    )
