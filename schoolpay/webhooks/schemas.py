from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime

from .base import WebhookProcessingStatus


def _coerce_identifier(value: Any) -> Any:
    # Some gateways send numeric order ids
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class OrderInfo(BaseModel):
    """Identifies which order a webhook refers to"""
    model_config = ConfigDict(extra="ignore")

    order_id: Optional[str] = None
    custom_order_id: Optional[str] = None
    school_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None

    @field_validator("order_id", "custom_order_id", "school_id", mode="before")
    @classmethod
    def coerce_identifiers(cls, v):
        return _coerce_identifier(v)


class WebhookPayload(BaseModel):
    """
    Gateway notification, validated at the boundary.

    Every field is optional so that a malformed delivery still parses far
    enough to be audited; the reconciler decides what is missing.
    """
    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    amount: Optional[float] = None
    order_info: Optional[OrderInfo] = None
    gateway_response: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("transaction_id", mode="before")
    @classmethod
    def coerce_transaction_id(cls, v):
        return _coerce_identifier(v)


class WebhookResponse(BaseModel):
    """Always returned with HTTP 200; success carries the logical outcome"""
    success: bool
    message: str
    processed_at: datetime


class WebhookLogResponse(BaseModel):
    id: UUID
    raw_payload: Any
    timestamp: datetime
    webhook_source: Optional[str] = None
    event_type: Optional[str] = None
    processing_status: WebhookProcessingStatus
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class WebhookLogListResponse(BaseModel):
    data: List[WebhookLogResponse]
    count: int
