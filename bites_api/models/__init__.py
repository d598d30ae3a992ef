"""Database models"""

from bites_api.models.menu import Product, ProductSize, Addon
from bites_api.models.order import Order, OrderItem, OrderItemAddon, OrderStatusHistory
from bites_api.models.notification import DeviceToken, WebPushSubscription
from bites_api.models.user import User, UserRole

__all__ = [
    "Product",
    "ProductSize",
    "Addon",
    "Order",
    "OrderItem",
    "OrderItemAddon",
    "OrderStatusHistory",
    "DeviceToken",
    "WebPushSubscription",
    "User",
    "UserRole",
]
