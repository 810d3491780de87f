"""Transaction listing and status lookup over orders LEFT OUTER JOIN order_statuses"""

import pytest

from schoolpay.error_handlers import NotFoundException
from schoolpay.orders.base import PaymentMode, PaymentStatus
from schoolpay.transactions.schemas import TransactionQuery
from schoolpay.transactions.service import TransactionService

from tests.helpers import BASE_TIME, minutes, webhook_payload


@pytest.fixture
def seed_orders(make_order, make_status):
    """
    12 orders ORD_001..ORD_012 created a minute apart. Orders 1-9 have a
    status cycling success/failed/pending; 10-12 have none yet.
    """
    async def _seed():
        cycle = [PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.PENDING]
        modes = [PaymentMode.UPI, PaymentMode.CARD, PaymentMode.NETBANKING]
        orders = []
        for i in range(1, 13):
            order = await make_order(
                f"ORD_{i:03d}",
                school_id="SCH001" if i % 2 else "SCH002",
                gateway_name="PhonePe" if i <= 6 else "Razorpay",
                created_at=BASE_TIME + minutes(i),
            )
            if i <= 9:
                await make_status(
                    order,
                    status=cycle[(i - 1) % 3],
                    amount=i * 100,
                    payment_mode=modes[(i - 1) % 3],
                    payment_time=BASE_TIME + minutes(100 + i),
                )
            orders.append(order)
        return orders

    return _seed


async def test_page_two_of_twelve(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(page=2, limit=5, sort="custom_order_id", order="asc")
    )

    assert [t.custom_order_id for t in response.data] == [f"ORD_{i:03d}" for i in range(6, 11)]
    assert response.pagination.total_items == 12
    assert response.pagination.total_pages == 3
    assert response.pagination.has_next is True
    assert response.pagination.has_prev is True
    assert response.sort.field == "custom_order_id"


async def test_orders_without_status_are_listed(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=100, sort="custom_order_id", order="asc")
    )

    assert len(response.data) == 12
    unreported = [t for t in response.data if t.status is None]
    assert [t.custom_order_id for t in unreported] == ["ORD_010", "ORD_011", "ORD_012"]
    assert all(t.transaction_amount is None and t.payment_time is None for t in unreported)


async def test_pages_cover_everything_exactly_once(db_session, seed_orders):
    """Sorting on a column full of ties must still give disjoint pages"""
    await seed_orders()
    service = TransactionService(db_session)

    seen = []
    page = 1
    while True:
        response = await service.list_transactions(
            TransactionQuery(page=page, limit=5, sort="status", order="asc")
        )
        seen.extend(t.custom_order_id for t in response.data)
        if not response.pagination.has_next:
            break
        page += 1

    assert page == 3
    assert len(seen) == len(set(seen)) == 12


async def test_nulls_last_when_descending(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=100, sort="payment_time", order="desc")
    )

    ids = [t.custom_order_id for t in response.data]
    assert ids[:9] == [f"ORD_{i:03d}" for i in range(9, 0, -1)]
    assert set(ids[9:]) == {"ORD_010", "ORD_011", "ORD_012"}


async def test_nulls_first_when_ascending(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=100, sort="payment_time", order="asc")
    )

    ids = [t.custom_order_id for t in response.data]
    assert set(ids[:3]) == {"ORD_010", "ORD_011", "ORD_012"}
    assert ids[3:] == [f"ORD_{i:03d}" for i in range(1, 10)]


async def test_unknown_sort_field_uses_creation_time(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=3, sort="not_a_column", order="desc")
    )

    assert response.sort.field == "createdAt"
    assert [t.custom_order_id for t in response.data] == ["ORD_012", "ORD_011", "ORD_010"]


async def test_status_filter_excludes_unreported_orders(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=100, status=PaymentStatus.PENDING, sort="custom_order_id", order="asc")
    )

    assert [t.custom_order_id for t in response.data] == ["ORD_003", "ORD_006", "ORD_009"]
    assert response.pagination.total_items == 3


async def test_payment_mode_and_gateway_filters(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(
            limit=100,
            payment_mode=PaymentMode.CARD,
            gateway_name="PhonePe",
            sort="custom_order_id",
            order="asc",
        )
    )

    assert [t.custom_order_id for t in response.data] == ["ORD_002", "ORD_005"]


async def test_school_scope_overrides_query_school(db_session, seed_orders):
    await seed_orders()

    response = await TransactionService(db_session).list_transactions(
        TransactionQuery(limit=100, school_id="SCH002"),
        school_id="SCH001",
    )

    assert response.pagination.total_items == 6
    assert {t.school_id for t in response.data} == {"SCH001"}


async def test_status_lookup(db_session, seed_orders):
    await seed_orders()
    service = TransactionService(db_session)

    reported = await service.get_transaction_status("ORD_002")
    assert reported.status == PaymentStatus.FAILED
    assert reported.order_amount == 200
    assert reported.payment_mode == PaymentMode.CARD

    unreported = await service.get_transaction_status("ORD_011")
    assert unreported.status == PaymentStatus.PENDING
    assert unreported.order_amount is None
    assert unreported.payment_time is None
    assert unreported.last_updated is not None


async def test_status_lookup_unknown_order(db_session):
    with pytest.raises(NotFoundException) as exc_info:
        await TransactionService(db_session).get_transaction_status("ORD_404")

    assert exc_info.value.status_code == 404
    assert exc_info.value.error_code == "ERR_1002"


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

async def test_list_endpoint(client, seed_orders):
    await seed_orders()

    response = await client.get(
        "/api/transactions",
        params={"page": 3, "limit": 5, "sort": "custom_order_id", "order": "asc"},
    )

    assert response.status_code == 200
    body = response.json()
    assert [t["custom_order_id"] for t in body["data"]] == ["ORD_011", "ORD_012"]
    assert body["pagination"] == {
        "current_page": 3,
        "total_pages": 3,
        "total_items": 12,
        "items_per_page": 5,
        "has_next": False,
        "has_prev": True,
    }
    assert body["sort"] == {"field": "custom_order_id", "order": "asc"}


async def test_school_endpoint(client, seed_orders):
    await seed_orders()

    response = await client.get(
        "/api/transactions/school/SCH002",
        params={"status": "success", "limit": 100},
    )

    assert response.status_code == 200
    body = response.json()
    # Even orders belong to SCH002; of those 2..9, only 4 is a success
    assert [t["custom_order_id"] for t in body["data"]] == ["ORD_004"]


@pytest.mark.parametrize("params", [
    {"page": 0},
    {"limit": 0},
    {"limit": 101},
    {"order": "sideways"},
    {"status": "refunded"},
])
async def test_invalid_listing_parameters(client, params):
    response = await client.get("/api/transactions", params=params)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "ERR_1001"


async def test_status_endpoint_after_webhook(client, make_order):
    await make_order("ORD_700")

    before = await client.get("/api/transaction-status/ORD_700")
    assert before.status_code == 200
    assert before.json()["status"] == "pending"

    webhook = await client.post(
        "/api/payment/webhook",
        json=webhook_payload(custom_order_id="ORD_700", status="paid", amount=4500),
    )
    assert webhook.json()["success"] is True

    after = await client.get("/api/transaction-status/ORD_700")
    body = after.json()
    assert body["status"] == "success"
    assert body["transaction_amount"] == 4500
    assert body["payment_mode"] == "upi"


async def test_status_endpoint_not_found(client):
    response = await client.get("/api/transaction-status/ORD_MISSING")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "ERR_1002"
    assert error["message"] == "Transaction not found: ORD_MISSING"


async def test_listing_requires_authentication(anonymous_client):
    response = await anonymous_client.get("/api/transactions")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ERR_1003"
