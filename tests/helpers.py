from datetime import datetime, timedelta, timezone

from sqlalchemy import select

BASE_TIME = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


async def fetch_all(db_session, model, *conditions):
    """Fresh rows straight from the store, bypassing cached instances"""
    result = await db_session.execute(
        select(model).where(*conditions).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)


def webhook_payload(custom_order_id=None, order_id=None, status="success", amount=1000, **extra):
    payload = {
        "status": status,
        "transaction_id": "TXN00000001",
        "payment_method": "upi",
        "amount": amount,
        "order_info": {
            "order_id": order_id,
            "custom_order_id": custom_order_id,
            "school_id": "SCH001",
            "amount": amount,
            "currency": "INR",
        },
        "gateway_response": "Payment successful",
        "metadata": {"bank_reference": "HDFC0001"},
    }
    payload.update(extra)
    return payload
