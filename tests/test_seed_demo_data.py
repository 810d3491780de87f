import random

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolpay import database
from schoolpay.orders.base import PaymentStatus
from schoolpay.orders.models import Order, OrderStatus

from scripts.seed_demo_data import build_demo_rows, seed_demo_data


@pytest.fixture
def seed_sessions(engine, monkeypatch):
    """Point the script's unit of work at the test store"""
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    monkeypatch.setattr(database, "async_session", factory)
    return factory


async def _custom_order_ids(factory):
    async with factory() as session:
        result = await session.execute(select(Order.custom_order_id))
        return [row[0] for row in result.all()]


def test_demo_rows_are_consistent():
    rows = list(build_demo_rows(30, random.Random(7)))

    assert len(rows) == 30
    assert len({order.custom_order_id for order, _ in rows}) == 30
    for order, status in rows:
        if status.status == PaymentStatus.FAILED:
            assert status.transaction_amount == 0
            assert status.error_message
        else:
            assert status.transaction_amount == status.order_amount
            assert status.error_message is None
        assert status.payment_time == order.created_at


def test_same_seed_same_data():
    first = [o.school_id for o, _ in build_demo_rows(10, random.Random(1))]
    second = [o.school_id for o, _ in build_demo_rows(10, random.Random(1))]
    assert first == second


def test_numbering_continues_after_start():
    rows = list(build_demo_rows(2, random.Random(1), start=5))

    assert [order.custom_order_id for order, _ in rows] == ["ORD000006", "ORD000007"]


# ---------------------------------------------------------------------------
# Running the script against a store
# ---------------------------------------------------------------------------

async def test_second_run_appends_without_collisions(seed_sessions):
    assert await seed_demo_data(count=3, seed=1) == 3
    assert await seed_demo_data(count=3, seed=2) == 3

    ids = await _custom_order_ids(seed_sessions)
    assert len(ids) == 6
    assert len(set(ids)) == 6

    async with seed_sessions() as session:
        statuses = (await session.execute(select(func.count(OrderStatus.id)))).scalar_one()
    assert statuses == 6


async def test_reset_starts_numbering_over(seed_sessions):
    await seed_demo_data(count=3, seed=1)
    await seed_demo_data(count=2, reset=True, seed=1)

    ids = await _custom_order_ids(seed_sessions)
    assert sorted(ids) == ["ORD000001", "ORD000002"]
