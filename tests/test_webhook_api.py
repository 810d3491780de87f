"""HTTP surface of the webhook endpoint and the audit-log browser"""

import pytest

from schoolpay.orders.models import OrderStatus

from tests.helpers import fetch_all, webhook_payload


async def test_processed_webhook(client, make_order):
    await make_order("ORD_800")

    response = await client.post("/api/payment/webhook", json=webhook_payload(custom_order_id="ORD_800"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Webhook processed successfully"
    assert body["processed_at"]


async def test_webhook_is_public(anonymous_client, make_order):
    await make_order("ORD_801")

    response = await anonymous_client.post(
        "/api/payment/webhook", json=webhook_payload(custom_order_id="ORD_801")
    )

    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.parametrize("payload, message", [
    ({"status": "success"}, "Invalid webhook payload: order_info is required"),
    ({"order_info": {"custom_order_id": "ORD_X"}}, "Invalid webhook payload: status is required"),
    (webhook_payload(custom_order_id="ORD_UNKNOWN"), "Order not found"),
])
async def test_logical_failures_still_answer_200(client, payload, message):
    response = await client.post("/api/payment/webhook", json=payload)

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["message"] == message


async def test_non_json_body_is_audited(client):
    response = await client.post(
        "/api/payment/webhook",
        content=b"status=success&order=1",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is False

    logs = (await client.get("/api/payment/webhook-logs")).json()
    assert logs["count"] == 1
    entry = logs["data"][0]
    assert entry["raw_payload"] == {"raw_body": "status=success&order=1"}
    assert entry["processing_status"] == "invalid_payload"
    assert entry["event_type"] == "payment_unknown"


async def test_json_array_body(client):
    response = await client.post("/api/payment/webhook", json=[{"status": "success"}])

    assert response.status_code == 200
    assert response.json()["message"] == "Invalid webhook payload: payload must be a JSON object"


async def test_redelivery_over_http_keeps_one_status(client, db_session, make_order):
    await make_order("ORD_802")
    payload = webhook_payload(custom_order_id="ORD_802", status="success")

    for _ in range(3):
        response = await client.post("/api/payment/webhook", json=payload)
        assert response.json()["success"] is True

    assert len(await fetch_all(db_session, OrderStatus)) == 1
    logs = (await client.get("/api/payment/webhook-logs")).json()
    assert logs["count"] == 3


async def test_webhook_log_listing(client, make_order):
    await make_order("ORD_803")
    await client.post("/api/payment/webhook", json=webhook_payload(custom_order_id="ORD_803"))
    await client.post("/api/payment/webhook", json=webhook_payload(custom_order_id="ORD_GONE"))
    await client.post("/api/payment/webhook", json={"hello": "world"})

    limited = await client.get("/api/payment/webhook-logs", params={"limit": 2})
    assert limited.status_code == 200
    assert limited.json()["count"] == 2

    by_status = await client.get("/api/payment/webhook-logs/status/order_not_found")
    assert by_status.status_code == 200
    body = by_status.json()
    assert body["count"] == 1
    assert body["data"][0]["raw_payload"]["order_info"]["custom_order_id"] == "ORD_GONE"
    assert body["data"][0]["webhook_source"] == "edviron_payment"


async def test_webhook_log_unknown_status(client):
    response = await client.get("/api/payment/webhook-logs/status/lost")

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "ERR_1001"


@pytest.mark.parametrize("limit", [0, 501])
async def test_webhook_log_limit_bounds(client, limit):
    response = await client.get("/api/payment/webhook-logs", params={"limit": limit})

    assert response.status_code == 422


async def test_webhook_logs_require_authentication(anonymous_client):
    response = await anonymous_client.get("/api/payment/webhook-logs")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ERR_1003"


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in response.headers
