# schoolpay/orders/models.py
from sqlalchemy import Column, String, DateTime, JSON, Numeric, ForeignKey, Uuid, Enum as SQLEnum
import uuid

from ..database import Base
from .base import PaymentStatus, PaymentMode, enum_values, utcnow


class Order(Base):
    """Payment requests - one row per fee-payment flow"""
    __tablename__ = "orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    school_id = Column(String, nullable=False, index=True)
    trustee_id = Column(String, nullable=False, index=True)
    student_info = Column(JSON, nullable=False)  # {name, id, email, class?, section?}
    gateway_name = Column(String, nullable=False, index=True)

    # Client-visible identifier, referenced by gateways and the dashboard
    custom_order_id = Column(String, nullable=False, unique=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Order {self.custom_order_id} - {self.school_id}>"


class OrderStatus(Base):
    """Latest known payment outcome, at most one row per order"""
    __tablename__ = "order_statuses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Amounts
    order_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    transaction_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    payment_mode = Column(
        SQLEnum(PaymentMode, name="payment_mode", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=PaymentMode.UNKNOWN,
    )
    payment_details = Column(JSON)  # transaction_id, gateway_response, gateway_status, metadata
    bank_reference = Column(String)
    payment_message = Column(String)

    status = Column(
        SQLEnum(PaymentStatus, name="payment_status", native_enum=False, values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    error_message = Column(String)  # Only populated for FAILED

    payment_time = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<OrderStatus {self.order_id} - {self.status}>"
