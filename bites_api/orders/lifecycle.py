"""Order lifecycle: creation, status transitions and event emission"""

from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.config import settings
from bites_api.models.order import Order, OrderStatusHistory
from bites_api.orders.errors import InvalidTransition
from bites_api.orders.events import EventBus, OrderCreated, OrderStatusChanged
from bites_api.orders.factory import OrderFactory
from bites_api.orders.geo import ensure_within_radius
from bites_api.orders.queries import get_order
from bites_api.orders.status import OrderStatus, OrderType, can_transition
from bites_api.schemas.order import OrderCreate, OrderResponse

logger = structlog.get_logger()

# A concurrent insert can still take the same order number between the
# pre-check and our flush; the unique constraint rejects it and we rebuild.
CREATE_ATTEMPTS = 3


def snapshot(order: Order) -> OrderResponse:
    """Detached copy of a fully loaded order, safe to hand to other tasks"""
    return OrderResponse.model_validate(order)


class LifecycleService:
    """Runs each lifecycle operation as one transaction and publishes its
    event only after that transaction has committed.
    """

    def __init__(
        self,
        factory: Optional[OrderFactory] = None,
        bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.factory = factory or OrderFactory()
        self.bus = bus or EventBus()
        self.clock = clock or self.factory.clock

    async def create_order(
        self,
        db: AsyncSession,
        data: OrderCreate,
        user_id: Optional[UUID] = None,
    ) -> Order:
        if data.order_type == OrderType.DELIVERY:
            ensure_within_radius(
                settings.store_latitude,
                settings.store_longitude,
                data.delivery_latitude,
                data.delivery_longitude,
                settings.delivery_radius_km,
            )

        for attempt in range(1, CREATE_ATTEMPTS + 1):
            try:
                order = await self.factory.build(db, data, user_id=user_id)
                order_id = order.id
                await db.commit()
                break
            except IntegrityError:
                await db.rollback()
                if attempt == CREATE_ATTEMPTS:
                    raise
                logger.warning("Order insert conflict, retrying", attempt=attempt)
            except Exception:
                await db.rollback()
                raise

        order = await get_order(db, order_id)
        logger.info(
            "Order created",
            order_number=order.order_number,
            order_type=order.order_type.value,
            total=str(order.total),
            item_count=len(order.items),
            guest=order.user_id is None,
        )

        self.bus.publish(OrderCreated(order=snapshot(order)))
        return order

    async def transition_status(
        self,
        db: AsyncSession,
        order_id: UUID,
        new_status: OrderStatus,
        notes: Optional[str] = None,
        force: bool = False,
    ) -> Order:
        """Move an order along the transition table.

        ``force=True`` hands over to :meth:`force_status`, the operator path
        that skips the table.
        """
        if force:
            return await self.force_status(db, order_id, new_status, notes)

        new_status = OrderStatus(new_status)
        order = await get_order(db, order_id, for_update=True)
        current = order.status
        if not can_transition(current, new_status):
            order_number = order.order_number
            # Releases the row lock; rollback also expires ``order``
            await db.rollback()
            logger.info(
                "Rejected status transition",
                order_number=order_number,
                current=current.value,
                requested=new_status.value,
            )
            raise InvalidTransition(current.value, new_status.value)

        return await self._record_transition(db, order, new_status, notes, forced=False)

    async def force_status(
        self,
        db: AsyncSession,
        order_id: UUID,
        new_status: OrderStatus,
        notes: Optional[str] = None,
    ) -> Order:
        """Operator correction: set any status, marked as forced in history"""
        new_status = OrderStatus(new_status)
        order = await get_order(db, order_id, for_update=True)
        if not can_transition(order.status, new_status):
            logger.warning(
                "Forcing status outside the transition table",
                order_number=order.order_number,
                current=order.status.value,
                requested=new_status.value,
            )
        return await self._record_transition(db, order, new_status, notes, forced=True)

    def _next_history_time(self, order: Order) -> datetime:
        now = self.clock()
        if order.status_history:
            latest = max(entry.created_at for entry in order.status_history)
            if now <= latest:
                now = latest + timedelta(microseconds=1)
        return now

    async def _record_transition(
        self,
        db: AsyncSession,
        order: Order,
        new_status: OrderStatus,
        notes: Optional[str],
        forced: bool,
    ) -> Order:
        old_status = order.status
        now = self._next_history_time(order)

        try:
            order.status = new_status
            order.updated_at = now
            order.status_history.append(
                OrderStatusHistory(status=new_status, notes=notes, forced=forced, created_at=now)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        order = await get_order(db, order.id)
        logger.info(
            "Order status changed",
            order_number=order.order_number,
            old_status=old_status.value,
            new_status=new_status.value,
            forced=forced,
        )

        self.bus.publish(
            OrderStatusChanged(
                order=snapshot(order),
                old_status=old_status,
                new_status=new_status,
                forced=forced,
            )
        )
        return order
