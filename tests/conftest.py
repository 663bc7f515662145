"""
Shared pytest fixtures.

Orders are stored in an in-memory SQLite database (aiosqlite) and Redis is
replaced with an AsyncMock, so nothing here needs a running server.
"""

import os
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from app import commands  # noqa: E402
from app.models import Base, Order  # noqa: E402
from app.publisher import EventPublisher  # noqa: E402
from app.schemas import CreateOrderRequest, OrderItemRequest  # noqa: E402
from app.transitions import OrderStatus  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def publisher(redis) -> EventPublisher:
    return EventPublisher(redis)


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def create_request() -> CreateOrderRequest:
    return CreateOrderRequest(
        shipping_address_id=uuid4(),
        payment_id=uuid4(),
        items=[
            OrderItemRequest(
                product_id=uuid4(),
                sku="A1",
                product_name="Widget",
                quantity=2,
                unit_price=Decimal("10.00"),
                total_price=Decimal("20.00"),
            )
        ],
        subtotal=Decimal("20.00"),
        tax_amount=Decimal("2.00"),
        total=Decimal("22.00"),
        currency="USD",
    )


@pytest_asyncio.fixture
async def placed_order(session, publisher, owner_id, tenant_id, create_request):
    """A freshly created order; the Redis mock is reset afterwards."""
    response = await commands.create_order(session, publisher, owner_id, tenant_id, create_request)
    publisher.redis.reset_mock()
    return response


@pytest.fixture
def force_status(session):
    """Put an order straight into `status` without going through a command."""

    async def _force(order_id: UUID, status: OrderStatus) -> Order:
        order = await session.get(Order, order_id)
        order.status = status
        await session.commit()
        return order

    return _force
