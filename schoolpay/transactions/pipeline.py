"""
Storage-independent pieces of the transaction view.

The service runs the LEFT OUTER JOIN in SQL; everything here operates on
already loaded rows or plain numbers so it can be tested on its own.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..orders.base import PaymentStatus

DEFAULT_SORT_FIELD = "createdAt"


@dataclass(frozen=True)
class SortSpec:
    field: str      # name echoed back to the client
    side: str       # "order" or "status"
    attribute: str  # model attribute on that side


SORT_FIELDS = {
    "payment_time": SortSpec("payment_time", "status", "payment_time"),
    "order_amount": SortSpec("order_amount", "status", "order_amount"),
    "transaction_amount": SortSpec("transaction_amount", "status", "transaction_amount"),
    "status": SortSpec("status", "status", "status"),
    "school_id": SortSpec("school_id", "order", "school_id"),
    "custom_order_id": SortSpec("custom_order_id", "order", "custom_order_id"),
}

DEFAULT_SORT = SortSpec(DEFAULT_SORT_FIELD, "order", "created_at")


def resolve_sort_field(sort: Optional[str]) -> SortSpec:
    """Unrecognized or missing fields sort by order creation time"""
    return SORT_FIELDS.get(sort or "", DEFAULT_SORT)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(total_items: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total_items / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total_items,
        "items_per_page": limit,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def compose_transaction(order, status=None) -> Dict[str, Any]:
    """Flatten an order and its optional status row into one transaction record"""
    return {
        "order_id": order.id,
        "custom_order_id": order.custom_order_id,
        "school_id": order.school_id,
        "trustee_id": order.trustee_id,
        "student_info": order.student_info or {},
        "gateway_name": order.gateway_name,
        "order_amount": status.order_amount if status else None,
        "transaction_amount": status.transaction_amount if status else None,
        "payment_mode": status.payment_mode if status else None,
        "payment_details": status.payment_details if status else None,
        "bank_reference": status.bank_reference if status else None,
        "payment_message": status.payment_message if status else None,
        "status": status.status if status else None,
        "error_message": status.error_message if status else None,
        "payment_time": status.payment_time if status else None,
        "order_created_at": order.created_at,
        "status_updated_at": status.updated_at if status else None,
    }


def compose_status_view(order, status=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Single-order status lookup. An order that has never been reported on
    reads as pending, last updated now.
    """
    now = now or datetime.now(timezone.utc)
    if status is None:
        return {
            "custom_order_id": order.custom_order_id,
            "status": PaymentStatus.PENDING,
            "order_amount": None,
            "transaction_amount": None,
            "payment_mode": None,
            "payment_time": None,
            "error_message": None,
            "last_updated": now,
        }

    return {
        "custom_order_id": order.custom_order_id,
        "status": status.status or PaymentStatus.PENDING,
        "order_amount": status.order_amount,
        "transaction_amount": status.transaction_amount,
        "payment_mode": status.payment_mode,
        "payment_time": status.payment_time,
        "error_message": status.error_message,
        "last_updated": status.updated_at or now,
    }
