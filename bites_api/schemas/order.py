"""Order schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from bites_api.orders.status import OrderStatus, OrderType, PaymentMethod

# South African mobile numbers: +27 or 0, then 6-8, then eight digits
PHONE_PATTERN = r"^(\+27|0)[6-8][0-9]{8}$"


class CartLine(BaseModel):
    """One cart line: a product size, a quantity and optional add-ons"""
    product_size_id: UUID
    quantity: int = Field(ge=1, le=10)
    addon_ids: List[UUID] = []


class OrderCreate(BaseModel):
    """Create order request"""
    customer_name: str = Field(min_length=1, max_length=255)
    customer_phone: str = Field(pattern=PHONE_PATTERN)
    order_type: OrderType = OrderType.DELIVERY
    delivery_address: str = Field(min_length=1, max_length=500)
    delivery_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    delivery_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(default=None, max_length=500)
    items: List[CartLine] = Field(min_length=1)

    @field_validator("payment_method", mode="before")
    @classmethod
    def default_payment_method(cls, value):
        return PaymentMethod.CASH if value is None else value


class OrderStatusUpdate(BaseModel):
    """Status change request"""
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)


class OrderItemAddonResponse(BaseModel):
    addon_id: Optional[UUID] = None
    addon_name: str
    addon_price: Decimal
    quantity: int

    class Config:
        from_attributes = True


class OrderItemResponse(BaseModel):
    """Order item in response"""
    id: UUID
    product_id: Optional[UUID] = None
    product_size_id: Optional[UUID] = None
    product_name: str
    size: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    addons: List[OrderItemAddonResponse] = []

    class Config:
        from_attributes = True


class OrderStatusHistoryResponse(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None
    forced: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Fully loaded order. Also the snapshot carried by lifecycle events."""
    id: UUID
    user_id: Optional[UUID] = None
    order_number: str
    customer_name: str
    customer_phone: str
    order_type: OrderType
    delivery_address: str
    delivery_latitude: Optional[float] = None
    delivery_longitude: Optional[float] = None
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    notes: Optional[str] = None
    estimated_ready_time: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []
    status_history: List[OrderStatusHistoryResponse] = []

    class Config:
        from_attributes = True


class OrderEnvelope(BaseModel):
    """Single-order response body"""
    message: Optional[str] = None
    order: OrderResponse


class OrderListMeta(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int


class OrderListResponse(BaseModel):
    """Paginated order list"""
    orders: List[OrderResponse]
    meta: OrderListMeta
