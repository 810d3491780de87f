"""
Append-only audit trail of inbound webhooks.

Writes are best-effort: a failure here is logged and swallowed so that
reconciliation always proceeds.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..logging_config import get_logger
from .base import WebhookProcessingStatus
from ..orders.base import utcnow
from .models import WebhookLog

logger = get_logger(__name__)


def derive_event_type(raw_payload: Any) -> str:
    """payment_<status> from the raw payload, payment_unknown without a status string"""
    raw_status = raw_payload.get("status") if isinstance(raw_payload, dict) else None
    if isinstance(raw_status, str) and raw_status.strip():
        return f"payment_{raw_status.strip()}"
    return "payment_unknown"


class WebhookAuditLog:
    """Persists exactly one WebhookLog row per webhook call"""

    def __init__(self, db: AsyncSession, source: Optional[str] = None):
        self.db = db
        self.source = source or settings.WEBHOOK_SOURCE

    async def record_received(self, raw_payload: Any) -> Optional[uuid.UUID]:
        """
        Insert the audit row before any processing happens.

        Returns the row id, or None when the write failed.
        """
        return await self._insert(raw_payload, WebhookProcessingStatus.RECEIVED)

    async def record_outcome(
        self,
        log_id: Optional[uuid.UUID],
        raw_payload: Any,
        outcome: WebhookProcessingStatus,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Move the row from RECEIVED to its terminal outcome.

        When the initial insert failed there is no row yet, so the terminal
        outcome is inserted instead, keeping one row per call.
        """
        if log_id is None:
            await self._insert(raw_payload, outcome, error_message)
            return

        try:
            await self.db.execute(
                update(WebhookLog)
                .where(WebhookLog.id == log_id)
                .values(processing_status=outcome, error_message=error_message)
            )
            await self.db.commit()
            logger.debug(
                f"Webhook logged with status: {outcome.value}",
                extra={"extra_data": {"log_id": str(log_id)}}
            )
        except Exception as e:
            await self._safe_rollback()
            logger.error(
                f"Failed to record webhook outcome: {str(e)}",
                extra={"extra_data": {"log_id": str(log_id), "outcome": outcome.value}},
                exc_info=True
            )

    async def _insert(
        self,
        raw_payload: Any,
        outcome: WebhookProcessingStatus,
        error_message: Optional[str] = None,
    ) -> Optional[uuid.UUID]:
        log_id = uuid.uuid4()
        try:
            self.db.add(WebhookLog(
                id=log_id,
                raw_payload=raw_payload,
                timestamp=utcnow(),
                webhook_source=self.source,
                event_type=derive_event_type(raw_payload),
                processing_status=outcome,
                error_message=error_message,
            ))
            await self.db.commit()
            return log_id
        except Exception as e:
            await self._safe_rollback()
            logger.error(
                f"Failed to log webhook: {str(e)}",
                extra={"extra_data": {"outcome": outcome.value}},
                exc_info=True
            )
            return None

    async def _safe_rollback(self) -> None:
        try:
            await self.db.rollback()
        except Exception as rollback_error:
            logger.warning(
                "Failed to rollback after audit log error",
                extra={"extra_data": {"error": str(rollback_error)}}
            )

    async def list_recent(self, limit: int = 50) -> List[WebhookLog]:
        result = await self.db.execute(
            select(WebhookLog)
            .order_by(WebhookLog.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_by_status(
        self,
        processing_status: WebhookProcessingStatus,
        limit: Optional[int] = None,
    ) -> List[WebhookLog]:
        stmt = (
            select(WebhookLog)
            .where(WebhookLog.processing_status == processing_status)
            .order_by(WebhookLog.timestamp.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
