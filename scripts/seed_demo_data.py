"""
Populate the database with demo orders and statuses for the dashboard.

Usage:
    python -m scripts.seed_demo_data            # 80 orders, keeps existing rows
    python -m scripts.seed_demo_data --reset    # wipe orders/statuses first
"""

import argparse
import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, func, select

from schoolpay.database import close_engine, get_async_db_transaction
from schoolpay.logging_config import get_logger, setup_logging
from schoolpay.orders.base import PaymentMode, PaymentStatus
from schoolpay.orders.models import Order, OrderStatus

logger = get_logger(__name__)

SCHOOLS = [
    ("DPS001", "Delhi Public School"),
    ("KV002", "Kendriya Vidyalaya"),
    ("DAV003", "DAV Public School"),
    ("RYAN004", "Ryan International"),
    ("MOD005", "Modern School"),
    ("BB006", "Bal Bharati School"),
]

STUDENTS = [
    "Rahul Sharma", "Priya Patel", "Arjun Kumar", "Sneha Gupta",
    "Vikram Singh", "Ananya Reddy", "Karan Mehta", "Isha Verma",
    "Aditya Joshi", "Kavya Nair", "Rohit Agarwal", "Neha Mishra",
]

PAYMENT_MODES = [PaymentMode.UPI, PaymentMode.CARD, PaymentMode.NETBANKING, PaymentMode.WALLET]
STATUSES = [PaymentStatus.SUCCESS, PaymentStatus.PENDING, PaymentStatus.FAILED]
AMOUNTS = [500, 1000, 1500, 2000, 2500, 3000, 5000, 7500, 10000]
FEE_TYPES = ["Tuition Fee", "Transport Fee", "Library Fee", "Lab Fee"]
FAILURE_REASONS = ["Insufficient funds", "Card declined", "Network timeout", "Invalid CVV"]

GATEWAY_RESPONSES = {
    PaymentStatus.SUCCESS: "Payment successful",
    PaymentStatus.PENDING: "Payment pending",
}


def build_demo_rows(count: int, rng: random.Random, start: int = 0):
    """
    Yield (Order, OrderStatus) pairs with payment times over the last 30 days.

    Order numbers continue after `start` so repeated runs append rather
    than collide with earlier custom_order_ids.
    """
    now = datetime.now(timezone.utc)

    for i in range(start, start + count):
        school_id, school_name = rng.choice(SCHOOLS)
        student = STUDENTS[i % len(STUDENTS)]
        status = rng.choice(STATUSES)
        amount = rng.choice(AMOUNTS)
        paid_at = now - timedelta(seconds=rng.uniform(0, 30 * 24 * 3600))

        order = Order(
            school_id=school_id,
            trustee_id="TRUSTEE_001",
            student_info={
                "name": student,
                "id": f"STU{i + 1:04d}",
                "email": f"{student.split()[0].lower()}{i + 1}@example.com",
            },
            gateway_name="Edviron Gateway",
            custom_order_id=f"ORD{i + 1:06d}",
            created_at=paid_at,
        )

        failure_reason = rng.choice(FAILURE_REASONS) if status == PaymentStatus.FAILED else None
        gateway_response = failure_reason or GATEWAY_RESPONSES[status]

        order_status = OrderStatus(
            order_amount=amount,
            transaction_amount=0 if status == PaymentStatus.FAILED else amount,
            payment_mode=rng.choice(PAYMENT_MODES),
            payment_details={
                "transaction_id": f"TXN{i + 1:08d}",
                "gateway_response": gateway_response,
                "gateway_status": status.value,
                "metadata": {
                    "school_name": school_name,
                    "student_name": student,
                    "academic_year": "2024-25",
                    "fee_type": rng.choice(FEE_TYPES),
                },
            },
            bank_reference=f"BANK{i + 1:08d}" if status != PaymentStatus.PENDING else None,
            payment_message=gateway_response,
            status=status,
            error_message=failure_reason,
            payment_time=paid_at,
            updated_at=paid_at,
        )
        yield order, order_status


async def seed_demo_data(count: int = 80, reset: bool = False, seed: Optional[int] = None) -> int:
    rng = random.Random(seed)

    async with get_async_db_transaction() as db:
        if reset:
            await db.execute(delete(OrderStatus))
            await db.execute(delete(Order))
            logger.info("Cleared existing orders and statuses")

        existing = (await db.execute(select(func.count(Order.id)))).scalar_one()

        created = 0
        for order, order_status in build_demo_rows(count, rng, start=existing):
            db.add(order)
            await db.flush()
            order_status.order_id = order.id
            db.add(order_status)
            created += 1

    logger.info(
        f"Seeded {created} demo orders",
        extra={"extra_data": {"count": created, "reset": reset, "existing": existing}}
    )
    return created


async def main(args):
    try:
        await seed_demo_data(count=args.count, reset=args.reset, seed=args.seed)
    finally:
        await close_engine()


if __name__ == "__main__":
    setup_logging()

    parser = argparse.ArgumentParser(description="Seed demo payment data")
    parser.add_argument("--count", type=int, default=80, help="number of orders to create")
    parser.add_argument("--reset", action="store_true", help="delete existing orders and statuses first")
    parser.add_argument("--seed", type=int, default=None, help="random seed for reproducible data")
    asyncio.run(main(parser.parse_args()))
