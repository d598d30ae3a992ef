"""Cart line pricing.

Resolves a cart line against the live catalog and returns a snapshot that
no longer depends on it: later edits to product names, prices or add-ons
never change an order that has already been placed.
"""

from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from bites_api.models.menu import Addon, ProductSize
from bites_api.orders.errors import ProductUnavailable, ValidationError

logger = structlog.get_logger()

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


class PricedAddon(BaseModel):
    addon_id: Optional[UUID]
    name: str
    price: Decimal
    quantity: int = 1


class PricedLine(BaseModel):
    product_id: Optional[UUID]
    product_size_id: Optional[UUID]
    product_name: str
    size: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    addons: List[PricedAddon] = []


def price_line(
    size: ProductSize,
    addons: Sequence[Addon],
    quantity: int,
) -> PricedLine:
    """Price one line from already-loaded catalog rows.

    Raises ProductUnavailable when the product is disabled. Add-ons that are
    not currently available are dropped without error.
    """
    product = size.product
    if not product.is_available:
        raise ProductUnavailable(product.name)

    included = [addon for addon in addons if addon.is_available]
    addon_total = sum((to_money(addon.price) for addon in included), Decimal("0.00"))
    unit_price = to_money(size.price) + addon_total

    return PricedLine(
        product_id=product.id,
        product_size_id=size.id,
        product_name=product.name,
        size=size.size,
        quantity=quantity,
        unit_price=unit_price,
        total_price=(unit_price * quantity).quantize(CENT),
        addons=[
            PricedAddon(addon_id=addon.id, name=addon.name, price=to_money(addon.price))
            for addon in included
        ],
    )


class PricingEngine:
    """Loads catalog rows for a cart line and prices them"""

    async def price(
        self,
        db: AsyncSession,
        product_size_id: UUID,
        quantity: int,
        addon_ids: Sequence[UUID] = (),
    ) -> PricedLine:
        result = await db.execute(
            select(ProductSize)
            .where(ProductSize.id == product_size_id)
            .options(selectinload(ProductSize.product))
        )
        size = result.scalar_one_or_none()
        if size is None:
            raise ValidationError(f"Unknown product size: {product_size_id}")

        addons: List[Addon] = []
        if addon_ids:
            result = await db.execute(select(Addon).where(Addon.id.in_(list(addon_ids))))
            addons = list(result.scalars().all())
            missing = set(addon_ids) - {addon.id for addon in addons}
            if missing:
                unknown = ", ".join(sorted(str(addon_id) for addon_id in missing))
                raise ValidationError(f"Unknown add-on: {unknown}")

        line = price_line(size, addons, quantity)

        if len(line.addons) != len(set(addon_ids)):
            logger.info(
                "Skipped unavailable add-ons",
                product=line.product_name,
                requested=len(set(addon_ids)),
                included=len(line.addons),
            )
        return line
