"""Explicit loaders returning fully populated order aggregates"""

from typing import List, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bites_api.models.order import Order, OrderItem
from bites_api.orders.errors import OrderNotFound


def _aggregate_options():
    return (
        selectinload(Order.items).selectinload(OrderItem.addons),
        selectinload(Order.status_history),
    )


async def get_order(db: AsyncSession, order_id: UUID, for_update: bool = False) -> Order:
    """Order + items + addons + history, or OrderNotFound"""
    query = select(Order).where(Order.id == order_id).options(*_aggregate_options())
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query.execution_options(populate_existing=True))
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(str(order_id))
    return order


async def get_order_by_number(db: AsyncSession, order_number: str) -> Order:
    result = await db.execute(
        select(Order).where(Order.order_number == order_number).options(*_aggregate_options())
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_number)
    return order


async def list_orders_for_user(
    db: AsyncSession,
    user_id: UUID,
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[Order], int]:
    """A page of the user's orders, newest first, plus the total count"""
    total_result = await db.execute(
        select(func.count(Order.id)).where(Order.user_id == user_id)
    )
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(*_aggregate_options())
        .order_by(Order.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def order_number_exists(db: AsyncSession, order_number: str) -> bool:
    result = await db.execute(select(Order.id).where(Order.order_number == order_number))
    return result.first() is not None

