from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class WebhookProcessingStatus(str, Enum):
    RECEIVED = "received"
    INVALID_PAYLOAD = "invalid_payload"
    ORDER_NOT_FOUND = "order_not_found"
    PROCESSED = "processed"
    ERROR = "error"


@dataclass
class ReconciliationResult:
    """Outcome of one webhook delivery, never raised as an exception"""
    outcome: WebhookProcessingStatus
    message: str
    error_message: Optional[str] = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.outcome == WebhookProcessingStatus.PROCESSED
