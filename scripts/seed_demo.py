#!/usr/bin/env python3
"""
Seed script to create the demo catalog and users
"""

import asyncio
import uuid
from decimal import Decimal

MENU = [
    # name, category, sizes, available
    ("Slap Chips", "Chips", [("Small", "25.00"), ("Medium", "35.00"), ("Large", "45.00")], True),
    ("Kota", "Kotas", [("Quarter", "40.00"), ("Half", "65.00")], True),
    ("Russian & Chips", "Combos", [("Regular", "55.00")], True),
    ("Vetkoek & Mince", "Specials", [("Regular", "30.00")], True),
    ("Bunny Chow", "Specials", [("Quarter", "60.00")], False),
]

ADDONS = [
    ("Cheese", "5.00"),
    ("Atchar", "4.00"),
    ("Russian", "12.00"),
    ("Egg", "6.00"),
    ("Polony", "8.00"),
]


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select
    from bites_api.database import SessionLocal, engine, Base
    from bites_api.models.menu import Product, ProductSize, Addon
    from bites_api.models.user import User, UserRole
    from bites_api.api.auth import create_access_token

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        result = await db.execute(select(Product).where(Product.name == MENU[0][0]))
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo catalog...")

        for sort_order, (name, category, sizes, available) in enumerate(MENU):
            product = Product(
                id=uuid.uuid4(),
                name=name,
                category=category,
                is_available=available,
                sort_order=sort_order,
            )
            product.sizes = [
                ProductSize(size=size, price=Decimal(price)) for size, price in sizes
            ]
            db.add(product)

        for name, price in ADDONS:
            db.add(Addon(name=name, price=Decimal(price), is_available=True))

        admin = User(
            id=uuid.uuid4(),
            email="admin@kasibites.com",
            full_name="Store Admin",
            role=UserRole.ADMIN,
        )
        customer = User(
            id=uuid.uuid4(),
            email="thandi@example.com",
            full_name="Thandi Mokoena",
            phone="0821234567",
            role=UserRole.CUSTOMER,
        )
        db.add_all([admin, customer])

        await db.commit()

        print(f"""
Demo data created successfully!

Menu: {len(MENU)} products, {len(ADDONS)} add-ons

Users (bearer tokens, valid for 7 days):
  Admin:    {admin.email}
    {create_access_token(admin)}

  Customer: {customer.email}
    {create_access_token(customer)}
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
