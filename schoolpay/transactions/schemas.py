from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID
from datetime import datetime

from ..orders.base import PaymentMode, PaymentStatus


class TransactionQuery(BaseModel):
    """Listing parameters shared by the global and school-scoped listings"""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort: str = "payment_time"
    order: Literal["asc", "desc"] = "desc"
    status: Optional[PaymentStatus] = None
    payment_mode: Optional[PaymentMode] = None
    gateway_name: Optional[str] = None
    school_id: Optional[str] = None


class TransactionRecord(BaseModel):
    """One order joined with its (possibly absent) status"""
    order_id: UUID
    custom_order_id: str
    school_id: str
    trustee_id: str
    student_info: Dict[str, Any]
    gateway_name: str
    order_amount: Optional[float] = None
    transaction_amount: Optional[float] = None
    payment_mode: Optional[PaymentMode] = None
    payment_details: Optional[Dict[str, Any]] = None
    bank_reference: Optional[str] = None
    payment_message: Optional[str] = None
    status: Optional[PaymentStatus] = None
    error_message: Optional[str] = None
    payment_time: Optional[datetime] = None
    order_created_at: datetime
    status_updated_at: Optional[datetime] = None


class PaginationMeta(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_prev: bool


class SortInfo(BaseModel):
    field: str
    order: Literal["asc", "desc"]


class PaginatedTransactionResponse(BaseModel):
    data: List[TransactionRecord]
    pagination: PaginationMeta
    sort: SortInfo


class TransactionStatusResponse(BaseModel):
    custom_order_id: str
    status: PaymentStatus
    order_amount: Optional[float] = None
    transaction_amount: Optional[float] = None
    payment_mode: Optional[PaymentMode] = None
    payment_time: Optional[datetime] = None
    error_message: Optional[str] = None
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)
