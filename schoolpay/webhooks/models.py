# schoolpay/webhooks/models.py
from sqlalchemy import Column, String, DateTime, JSON, Uuid, Index, Enum as SQLEnum
import uuid

from ..database import Base
from ..orders.base import enum_values, utcnow
from .base import WebhookProcessingStatus


class WebhookLog(Base):
    """Audit trail - one row per inbound webhook call"""
    __tablename__ = "webhook_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    raw_payload = Column(JSON, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    webhook_source = Column(String, index=True)
    event_type = Column(String, index=True)  # payment_<gateway status>

    processing_status = Column(
        SQLEnum(
            WebhookProcessingStatus,
            name="webhook_processing_status",
            native_enum=False,
            values_callable=enum_values,
        ),
        nullable=False,
        default=WebhookProcessingStatus.RECEIVED,
        index=True,
    )
    error_message = Column(String)

    def __repr__(self):
        return f"<WebhookLog {self.id} - {self.processing_status}>"


# Log listings read newest first
Index("ix_webhook_logs_timestamp", WebhookLog.timestamp.desc())
