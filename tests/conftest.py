"""Test configuration and fixtures"""

import random
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

import bites_api.models  # noqa: F401  registers every table on Base.metadata
from bites_api.main import app
from bites_api.database import Base, get_db
from bites_api.api.auth import create_access_token
from bites_api.api.deps import get_lifecycle_service
from bites_api.models.menu import Product, ProductSize, Addon
from bites_api.models.user import User, UserRole
from bites_api.orders.events import EventBus, OrderCreated, OrderStatusChanged
from bites_api.orders.factory import OrderFactory
from bites_api.orders.lifecycle import LifecycleService
from bites_api.schemas.order import CartLine, OrderCreate


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2026, 3, 14, 12, 0, 0)


class FixedClock:
    """Deterministic clock; tests move it with ``advance``"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSubscriber:
    """Collects every published event"""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session in a test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def recorder():
    return RecordingSubscriber()


@pytest.fixture
def event_bus(recorder):
    bus = EventBus()
    bus.subscribe(OrderCreated, recorder)
    bus.subscribe(OrderStatusChanged, recorder)
    return bus


@pytest.fixture
def order_factory(clock):
    return OrderFactory(delivery_fee=Decimal("30.00"), clock=clock, rng=random.Random(7))


@pytest.fixture
def lifecycle(order_factory, event_bus):
    return LifecycleService(factory=order_factory, bus=event_bus)


@pytest.fixture
async def catalog(test_db):
    """Chips in three sizes, a disabled burger and two add-ons (one disabled)"""
    chips = Product(id=uuid4(), name="Slap Chips", is_available=True)
    burger = Product(id=uuid4(), name="Kota Burger", is_available=False)
    test_db.add_all([chips, burger])
    await test_db.flush()

    small = ProductSize(id=uuid4(), product_id=chips.id, size="Small", price=Decimal("25.00"))
    medium = ProductSize(id=uuid4(), product_id=chips.id, size="Medium", price=Decimal("35.00"))
    burger_regular = ProductSize(
        id=uuid4(), product_id=burger.id, size="Regular", price=Decimal("55.00")
    )
    cheese = Addon(id=uuid4(), name="Cheese", price=Decimal("5.00"), is_available=True)
    russian = Addon(id=uuid4(), name="Russian", price=Decimal("12.00"), is_available=False)
    test_db.add_all([small, medium, burger_regular, cheese, russian])
    await test_db.commit()

    return {
        "chips": chips,
        "burger": burger,
        "small": small,
        "medium": medium,
        "burger_regular": burger_regular,
        "cheese": cheese,
        "russian": russian,
    }


@pytest.fixture
def make_cart(catalog):
    """Builds the reference cart: medium chips with cheese"""
    def _make_cart(order_type="delivery", quantity=2, **overrides) -> OrderCreate:
        data = dict(
            customer_name="Thandi Mokoena",
            customer_phone="0821234567",
            order_type=order_type,
            delivery_address="12 Vilakazi Street, Soweto",
            items=[
                CartLine(
                    product_size_id=catalog["medium"].id,
                    quantity=quantity,
                    addon_ids=[catalog["cheese"].id],
                )
            ],
        )
        data.update(overrides)
        return OrderCreate(**data)

    return _make_cart


@pytest.fixture
async def test_user(test_db):
    """Create a customer"""
    user = User(
        id=uuid4(),
        email="customer@example.com",
        full_name="Test Customer",
        role=UserRole.CUSTOMER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def test_admin_user(test_db):
    """Create a store operator"""
    user = User(
        id=uuid4(),
        email="admin@example.com",
        full_name="Admin User",
        role=UserRole.ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def client(session_factory, lifecycle):
    """Create test client with overridden database and lifecycle service"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lifecycle_service] = lambda: lifecycle

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client, test_user):
    """Create authenticated test client"""
    token = create_access_token(test_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client


@pytest.fixture
async def admin_client(client, test_admin_user):
    """Create admin authenticated test client"""
    token = create_access_token(test_admin_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client
