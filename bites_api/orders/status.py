"""Order status values and the transition table"""

import enum
from typing import Dict, FrozenSet


class OrderStatus(str, enum.Enum):
    """Fulfillment workflow states (wire-stable values)"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"

    @property
    def label(self) -> str:
        return "Cash on Delivery" if self is PaymentMethod.CASH else "Card Payment"


class OrderType(str, enum.Enum):
    DELIVERY = "delivery"
    COLLECTION = "collection"

    @property
    def label(self) -> str:
        return "Collection" if self is OrderType.COLLECTION else "Delivery"


STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready for Pickup",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

# Linear flow, with cancellation allowed from every non-terminal state
TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    """Whether the non-forced path may move an order from current to requested"""
    return OrderStatus(requested) in TRANSITIONS[OrderStatus(current)]
