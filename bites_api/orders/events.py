"""Lifecycle events and the in-process event bus"""

from typing import Callable, Dict, List, Literal, Type, Union

from pydantic import BaseModel
import structlog

from bites_api.orders.status import OrderStatus
from bites_api.schemas.order import OrderResponse

logger = structlog.get_logger()


class OrderCreated(BaseModel):
    """Published after the order-creation transaction commits"""
    type: Literal["order_created"] = "order_created"
    order: OrderResponse


class OrderStatusChanged(BaseModel):
    """Published after a status transition commits"""
    type: Literal["order_status_changed"] = "order_status_changed"
    order: OrderResponse
    old_status: OrderStatus
    new_status: OrderStatus
    forced: bool = False


OrderEvent = Union[OrderCreated, OrderStatusChanged]

EVENT_TYPES: Dict[str, Type[BaseModel]] = {
    "order_created": OrderCreated,
    "order_status_changed": OrderStatusChanged,
}


def event_from_dict(payload: dict) -> OrderEvent:
    """Rebuild an event from its ``model_dump(mode="json")`` form"""
    try:
        event_cls = EVENT_TYPES[payload["type"]]
    except KeyError:
        raise ValueError(f"Unknown order event: {payload.get('type')}")
    return event_cls.model_validate(payload)


Handler = Callable[[OrderEvent], None]


class EventBus:
    """Synchronously calls a fixed list of subscribers per event type.

    Subscribers must return quickly; slow work belongs on a scheduler. A
    failing subscriber is logged and never stops the others or the
    publisher.
    """

    def __init__(self):
        self._subscribers: Dict[Type[BaseModel], List[Handler]] = {}

    def subscribe(self, event_type: Type[BaseModel], handler: Handler) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    def subscribers(self, event_type: Type[BaseModel]) -> List[Handler]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, event: OrderEvent) -> None:
        for handler in self.subscribers(type(event)):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event subscriber failed",
                    event_type=event.type,
                    order_number=event.order.order_number,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )
