"""Order aggregate construction"""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.config import settings
from bites_api.models.order import Order, OrderItem, OrderItemAddon, OrderStatusHistory
from bites_api.orders.errors import CodeGenerationExhausted
from bites_api.orders.pricing import PricedLine, PricingEngine, to_money
from bites_api.orders.queries import order_number_exists
from bites_api.orders.status import OrderStatus, OrderType
from bites_api.schemas.order import OrderCreate

logger = structlog.get_logger()

BASE_PREPARATION_MINUTES = 15
MINUTES_PER_ITEM = 2
MAX_PREPARATION_MINUTES = 30
DELIVERY_MINUTES = 15


def estimate_ready_time(total_quantity: int, now: datetime) -> datetime:
    """Preparation grows with item count up to a cap, plus a fixed delivery leg"""
    preparation = min(
        BASE_PREPARATION_MINUTES + total_quantity * MINUTES_PER_ITEM,
        MAX_PREPARATION_MINUTES,
    )
    return now + timedelta(minutes=preparation + DELIVERY_MINUTES)


def delivery_fee_for(order_type: OrderType, flat_fee: Decimal) -> Decimal:
    if OrderType(order_type) is OrderType.COLLECTION:
        return Decimal("0.00")
    return to_money(flat_fee)


class OrderFactory:
    """Builds a complete Order from validated cart input in the caller's transaction.

    ``clock`` and ``rng`` are injectable so estimated-ready timestamps and
    order codes are deterministic under test.
    """

    def __init__(
        self,
        pricing: Optional[PricingEngine] = None,
        delivery_fee: Optional[Decimal] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        rng: Optional[random.Random] = None,
        max_code_attempts: Optional[int] = None,
    ):
        self.pricing = pricing or PricingEngine()
        self.delivery_fee = settings.delivery_fee if delivery_fee is None else delivery_fee
        self.clock = clock
        self.rng = rng or random.SystemRandom()
        self.max_code_attempts = max_code_attempts or settings.order_code_max_attempts

    def draw_order_number(self) -> str:
        return f"{self.rng.randint(0, 999999):06d}"

    async def generate_order_number(self, db: AsyncSession) -> str:
        """Draw codes until one is not taken.

        The unique constraint on ``orders.order_number`` still guards the
        insert itself; this pre-check only keeps collisions rare.
        """
        for attempt in range(1, self.max_code_attempts + 1):
            code = self.draw_order_number()
            if not await order_number_exists(db, code):
                return code
            logger.debug("Order number collision", order_number=code, attempt=attempt)

        logger.error("Order number generation exhausted", attempts=self.max_code_attempts)
        raise CodeGenerationExhausted(self.max_code_attempts)

    async def price_cart(self, db: AsyncSession, data: OrderCreate) -> List[PricedLine]:
        return [
            await self.pricing.price(db, line.product_size_id, line.quantity, line.addon_ids)
            for line in data.items
        ]

    async def build(
        self,
        db: AsyncSession,
        data: OrderCreate,
        user_id: Optional[UUID] = None,
    ) -> Order:
        """Add the order header, its lines and first history entry to ``db``.

        Nothing is committed here; the caller owns the transaction.
        """
        lines = await self.price_cart(db, data)

        subtotal = sum((line.total_price for line in lines), Decimal("0.00"))
        delivery_fee = delivery_fee_for(data.order_type, self.delivery_fee)
        total = subtotal + delivery_fee

        order_number = await self.generate_order_number(db)
        now = self.clock()

        order = Order(
            user_id=user_id,
            order_number=order_number,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            order_type=data.order_type,
            delivery_address=data.delivery_address,
            delivery_latitude=data.delivery_latitude,
            delivery_longitude=data.delivery_longitude,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=total,
            status=OrderStatus.PENDING,
            payment_method=data.payment_method,
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )

        for position, line in enumerate(lines):
            item = OrderItem(
                position=position,
                product_id=line.product_id,
                product_size_id=line.product_size_id,
                product_name=line.product_name,
                size=line.size,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                created_at=now,
            )
            item.addons = [
                OrderItemAddon(
                    addon_id=addon.addon_id,
                    addon_name=addon.name,
                    addon_price=addon.price,
                    quantity=addon.quantity,
                    created_at=now,
                )
                for addon in line.addons
            ]
            order.items.append(item)

        order.status_history.append(
            OrderStatusHistory(status=OrderStatus.PENDING, notes="Order placed", created_at=now)
        )
        order.estimated_ready_time = estimate_ready_time(
            sum(line.quantity for line in lines), now
        )

        db.add(order)
        await db.flush()
        return order
