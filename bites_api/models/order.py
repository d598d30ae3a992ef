"""Order aggregate models"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, Integer, Numeric, Float, Boolean, Enum,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from bites_api.database import Base
from bites_api.orders.status import OrderStatus, OrderType, PaymentMethod


def _value_enum(enum_cls):
    """Store enum values (the wire strings) rather than member names"""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Order(Base):
    """Order header. Owns its line items and status history."""
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    order_number = Column(String(6), unique=True, nullable=False)

    # Customer information (captured at order time)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)

    # Fulfillment
    order_type = Column(_value_enum(OrderType), nullable=False, default=OrderType.DELIVERY)
    delivery_address = Column(Text, nullable=False)
    delivery_latitude = Column(Float)
    delivery_longitude = Column(Float)

    # Pricing
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    # Status
    status = Column(_value_enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_method = Column(_value_enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH)

    notes = Column(Text)
    estimated_ready_time = Column(DateTime)

    # Metadata
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.created_at",
    )


class OrderItem(Base):
    """Line item snapshot; never re-derived from the catalog"""
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    # Catalog references kept for reporting only
    product_id = Column(UUID(as_uuid=True))
    product_size_id = Column(UUID(as_uuid=True))

    product_name = Column(String(255), nullable=False)
    size = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")
    addons = relationship("OrderItemAddon", back_populates="order_item", cascade="all, delete-orphan")


class OrderItemAddon(Base):
    """Add-on snapshot for a line item"""
    __tablename__ = "order_item_addons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_item_id = Column(
        UUID(as_uuid=True), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False
    )
    addon_id = Column(UUID(as_uuid=True))
    addon_name = Column(String(100), nullable=False)
    addon_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    order_item = relationship("OrderItem", back_populates="addons")


class OrderStatusHistory(Base):
    """Append-only audit trail of status changes"""
    __tablename__ = "order_status_histories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    status = Column(_value_enum(OrderStatus), nullable=False)
    notes = Column(Text)
    forced = Column(Boolean, nullable=False, default=False)  # operator bypassed the transition table
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="status_history")
