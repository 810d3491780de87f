"""
Shared fixtures: an in-memory SQLite store per test and an HTTP client
wired to the real application.
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["CLERK_SECRET_KEY"] = "sk_test_placeholder"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolpay.auth.dependencies import get_current_user_id
from schoolpay.database import Base, get_async_db
from schoolpay.main import app
from schoolpay.orders.base import PaymentMode, PaymentStatus
from schoolpay.orders.models import Order, OrderStatus

from tests.helpers import BASE_TIME

TEST_USER_ID = "user_test_admin"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session):
    """Authenticated client; every request shares the test session"""

    async def override_get_async_db():
        yield db_session

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client(db_session):
    """Client without the auth override, for checking protected routes"""

    async def override_get_async_db():
        yield db_session

    app.dependency_overrides[get_async_db] = override_get_async_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_order(db_session):
    async def _make(
        custom_order_id: str,
        school_id: str = "SCH001",
        gateway_name: str = "PhonePe",
        created_at: datetime = BASE_TIME,
    ) -> Order:
        order = Order(
            school_id=school_id,
            trustee_id="TRUSTEE_001",
            student_info={"name": "Rahul Sharma", "id": "STU001", "email": "rahul@example.com"},
            gateway_name=gateway_name,
            custom_order_id=custom_order_id,
            created_at=created_at,
        )
        db_session.add(order)
        await db_session.commit()
        return order

    return _make


@pytest.fixture
def make_status(db_session):
    async def _make(
        order: Order,
        status: PaymentStatus = PaymentStatus.SUCCESS,
        amount: float = 1000,
        payment_mode: PaymentMode = PaymentMode.UPI,
        payment_time: datetime = BASE_TIME,
    ) -> OrderStatus:
        record = OrderStatus(
            order_id=order.id,
            order_amount=amount,
            transaction_amount=amount,
            payment_mode=payment_mode,
            status=status,
            payment_time=payment_time,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make

