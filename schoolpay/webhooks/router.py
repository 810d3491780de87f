# schoolpay/webhooks/router.py
from json import JSONDecodeError
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import get_current_user_id
from ..config import settings
from ..database import get_async_db
from .audit import WebhookAuditLog
from .base import WebhookProcessingStatus
from .schemas import WebhookLogListResponse, WebhookLogResponse, WebhookResponse
from .service import WebhookService

router = APIRouter(prefix="/payment", tags=["webhooks"])


def get_webhook_service(db: AsyncSession = Depends(get_async_db)) -> WebhookService:
    """Dependency for WebhookService"""
    return WebhookService(db)


def get_webhook_audit_log(db: AsyncSession = Depends(get_async_db)) -> WebhookAuditLog:
    return WebhookAuditLog(db)


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(
    request: Request,
    webhook_service: WebhookService = Depends(get_webhook_service),
):
    """
    Gateway payment notification.

    Always answers 200; `success` carries the reconciliation outcome.
    The body is read raw so that malformed deliveries are still audited.
    """
    body = await request.body()
    try:
        raw_payload = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        raw_payload = {"raw_body": body.decode("utf-8", errors="replace")}

    result = await webhook_service.process_webhook(raw_payload)

    return WebhookResponse(
        success=result.success,
        message=result.message,
        processed_at=result.processed_at,
    )


@router.get("/webhook-logs", response_model=WebhookLogListResponse)
async def get_webhook_logs(
    user_id: Annotated[str, Depends(get_current_user_id)],
    limit: int = Query(settings.WEBHOOK_LOG_DEFAULT_LIMIT, ge=1, le=500),
    audit_log: WebhookAuditLog = Depends(get_webhook_audit_log),
):
    """Most recent webhook deliveries, newest first"""
    logs = await audit_log.list_recent(limit)
    return WebhookLogListResponse(
        data=[WebhookLogResponse.model_validate(log) for log in logs],
        count=len(logs),
    )


@router.get("/webhook-logs/status/{processing_status}", response_model=WebhookLogListResponse)
async def get_webhook_logs_by_status(
    processing_status: WebhookProcessingStatus,
    user_id: Annotated[str, Depends(get_current_user_id)],
    audit_log: WebhookAuditLog = Depends(get_webhook_audit_log),
):
    """Webhook deliveries with a given processing outcome"""
    logs = await audit_log.list_by_status(processing_status)
    return WebhookLogListResponse(
        data=[WebhookLogResponse.model_validate(log) for log in logs],
        count=len(logs),
    )
