"""
Webhook reconciliation:
- Audit row written before anything else
- Order resolution by internal id, then custom_order_id
- Gateway status mapped onto the canonical vocabulary
- Atomic upsert of the single OrderStatus row per order
- Nothing ever raised past process_webhook
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database_utils import upsert_unique_record
from ..logging_config import get_logger, log_business_event
from ..orders.base import PaymentStatus, normalize_payment_mode, utcnow
from ..orders.models import Order, OrderStatus
from ..orders.service import OrderService
from .audit import WebhookAuditLog
from .base import ReconciliationResult, WebhookProcessingStatus
from .schemas import WebhookPayload
from .status_mapping import map_gateway_status

logger = get_logger(__name__)

DEFAULT_FAILURE_MESSAGE = "Payment failed"


class WebhookService:
    """Turns gateway notifications into OrderStatus upserts"""

    def __init__(self, db: AsyncSession, audit_log: Optional[WebhookAuditLog] = None):
        self.db = db
        self.audit_log = audit_log or WebhookAuditLog(db)
        self.orders = OrderService(db)

    async def process_webhook(self, raw_payload: Any) -> ReconciliationResult:
        """
        Reconcile one webhook delivery.

        Invalid payloads and unknown orders are business outcomes: they come
        back as a failed ReconciliationResult, never as an exception. Any
        unexpected error is caught here, audited with outcome ERROR, and
        reported the same way.
        """
        log_id = await self.audit_log.record_received(raw_payload)

        payload, problem = self._parse(raw_payload)
        if payload is None:
            logger.warning(
                "Invalid webhook payload",
                extra={"extra_data": {"problem": problem}}
            )
            log_business_event("webhook_invalid_payload", problem=problem)
            return await self._finish(
                log_id, raw_payload,
                WebhookProcessingStatus.INVALID_PAYLOAD,
                f"Invalid webhook payload: {problem}",
                error_message=problem,
            )

        order_info = payload.order_info
        logger.info(
            "Processing webhook",
            extra={"extra_data": {
                "order_id": order_info.order_id,
                "custom_order_id": order_info.custom_order_id,
                "gateway_status": payload.status,
            }}
        )

        try:
            order = await self.orders.find_for_webhook(
                order_id=order_info.order_id,
                custom_order_id=order_info.custom_order_id,
            )

            if not order:
                logger.warning(
                    "Order not found for webhook",
                    extra={"extra_data": order_info.model_dump()}
                )
                log_business_event(
                    "webhook_order_not_found",
                    order_id=order_info.order_id,
                    custom_order_id=order_info.custom_order_id,
                )
                return await self._finish(
                    log_id, raw_payload,
                    WebhookProcessingStatus.ORDER_NOT_FOUND,
                    "Order not found",
                )

            status_record = await self.upsert_order_status(order, payload)

        except Exception as e:
            logger.error(
                f"Error processing webhook: {str(e)}",
                extra={"extra_data": {
                    "order_id": order_info.order_id,
                    "custom_order_id": order_info.custom_order_id,
                }},
                exc_info=True
            )
            await self._safe_rollback()
            return await self._finish(
                log_id, raw_payload,
                WebhookProcessingStatus.ERROR,
                "Internal server error",
                error_message=str(e),
            )

        log_business_event(
            "webhook_processed",
            order_id=str(order.id),
            custom_order_id=order.custom_order_id,
            status=status_record.status.value,
            transaction_amount=status_record.transaction_amount,
        )
        logger.info(
            "Webhook processed successfully",
            extra={"order_id": str(order.id)}
        )
        return await self._finish(
            log_id, raw_payload,
            WebhookProcessingStatus.PROCESSED,
            "Webhook processed successfully",
        )

    async def upsert_order_status(self, order: Order, payload: WebhookPayload) -> OrderStatus:
        """Create or overwrite the order's single OrderStatus row"""
        return await upsert_unique_record(
            self.db,
            OrderStatus,
            unique_keys={"order_id": order.id},
            values=build_status_values(payload),
        )

    @staticmethod
    def _parse(raw_payload: Any):
        """Returns (payload, None) when usable, otherwise (None, problem description)"""
        if not isinstance(raw_payload, dict):
            return None, "payload must be a JSON object"

        try:
            payload = WebhookPayload.model_validate(raw_payload)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            return None, f"malformed fields: {fields}"

        if payload.order_info is None:
            return None, "order_info is required"
        if not payload.status or not payload.status.strip():
            return None, "status is required"

        return payload, None

    async def _finish(
        self,
        log_id,
        raw_payload: Any,
        outcome: WebhookProcessingStatus,
        message: str,
        error_message: Optional[str] = None,
    ) -> ReconciliationResult:
        await self.audit_log.record_outcome(log_id, raw_payload, outcome, error_message)
        return ReconciliationResult(outcome=outcome, message=message, error_message=error_message)

    async def _safe_rollback(self) -> None:
        try:
            await self.db.rollback()
        except Exception as rollback_error:
            logger.warning(
                "Failed to rollback after webhook error",
                extra={"extra_data": {"error": str(rollback_error)}}
            )


def build_status_values(payload: WebhookPayload) -> Dict[str, Any]:
    """Column values for the OrderStatus upsert"""
    order_info = payload.order_info
    metadata = payload.metadata or {}
    status = map_gateway_status(payload.status)
    now = utcnow()

    bank_reference = metadata.get("bank_reference")

    return {
        "order_amount": order_info.amount or 0,
        "transaction_amount": payload.amount or order_info.amount or 0,
        "payment_mode": normalize_payment_mode(payload.payment_method),
        "payment_details": {
            "transaction_id": payload.transaction_id,
            "gateway_response": payload.gateway_response,
            "gateway_status": payload.status,
            "payment_method": payload.payment_method,
            "currency": order_info.currency,
            "metadata": payload.metadata,
        },
        "bank_reference": str(bank_reference) if bank_reference is not None else None,
        "payment_message": payload.gateway_response,
        "status": status,
        # Cleared on every non-failed delivery
        "error_message": (
            payload.gateway_response or DEFAULT_FAILURE_MESSAGE
            if status == PaymentStatus.FAILED
            else None
        ),
        "payment_time": now,
        "updated_at": now,
    }
