from typing import Any

from ..orders.base import PaymentStatus

GATEWAY_STATUS_MAP = {
    "success": PaymentStatus.SUCCESS,
    "completed": PaymentStatus.SUCCESS,
    "paid": PaymentStatus.SUCCESS,
    "failed": PaymentStatus.FAILED,
    "error": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.CANCELLED,
    "canceled": PaymentStatus.CANCELLED,
    "pending": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
}


def map_gateway_status(raw_status: Any) -> PaymentStatus:
    """
    Translate a gateway status word into the canonical PaymentStatus.

    Matching is case-insensitive. Anything unrecognized (including
    non-strings) maps to PENDING so a webhook is never dropped and no new
    status value is ever invented.
    """
    if not isinstance(raw_status, str):
        return PaymentStatus.PENDING
    return GATEWAY_STATUS_MAP.get(raw_status.strip().lower(), PaymentStatus.PENDING)
