"""Order API endpoints"""

import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.database import get_db
from bites_api.models.user import User
from bites_api.orders.errors import OrderError
from bites_api.orders.lifecycle import LifecycleService, snapshot
from bites_api.orders.queries import get_order as load_order, get_order_by_number, list_orders_for_user
from bites_api.schemas.order import (
    OrderCreate,
    OrderEnvelope,
    OrderListMeta,
    OrderListResponse,
    OrderStatusUpdate,
)
from bites_api.api.auth import get_current_active_user, get_optional_user, require_admin
from bites_api.api.deps import get_lifecycle_service

router = APIRouter()
admin_router = APIRouter()
logger = structlog.get_logger()


def _http_error(error: OrderError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.post("", response_model=OrderEnvelope, status_code=201)
async def create_order(
    order_data: OrderCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """Place an order as a guest or an authenticated customer"""
    try:
        order = await lifecycle.create_order(
            db, order_data, user_id=current_user.id if current_user else None
        )
    except OrderError as e:
        raise _http_error(e)

    return OrderEnvelope(message="Order placed successfully", order=snapshot(order))


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's orders, newest first"""
    orders, total = await list_orders_for_user(db, current_user.id, page=page, per_page=per_page)

    return OrderListResponse(
        orders=[snapshot(order) for order in orders],
        meta=OrderListMeta(
            current_page=page,
            last_page=max(1, math.ceil(total / per_page)),
            per_page=per_page,
            total=total,
        ),
    )


@router.get("/{order_number}", response_model=OrderEnvelope)
async def get_order(
    order_number: str,
    db: AsyncSession = Depends(get_db),
):
    """Public order tracking by order number"""
    try:
        order = await get_order_by_number(db, order_number)
    except OrderError as e:
        raise _http_error(e)

    return OrderEnvelope(order=snapshot(order))


@router.patch("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """Move an order to the next status; the transition table is enforced.

    Only the customer who placed the order or an admin may move it.
    """
    try:
        order = await load_order(db, order_id)
    except OrderError as e:
        raise _http_error(e)

    if not current_user.is_admin and order.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    try:
        order = await lifecycle.transition_status(db, order_id, update.status, update.notes)
    except OrderError as e:
        raise _http_error(e)

    return OrderEnvelope(message="Order status updated", order=snapshot(order))


@admin_router.patch("/{order_id}/status", response_model=OrderEnvelope)
async def force_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    """Operator correction: set any status"""
    logger.info(
        "Admin status override",
        order_id=str(order_id),
        status=update.status.value,
        admin_id=str(current_user.id),
    )
    try:
        order = await lifecycle.force_status(db, order_id, update.status, update.notes)
    except OrderError as e:
        raise _http_error(e)

    return OrderEnvelope(message="Order status updated successfully", order=snapshot(order))
