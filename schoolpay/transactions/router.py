"""
Transactions API
Endpoints:
- GET /transactions
- GET /transactions/school/{school_id}
- GET /transaction-status/{custom_order_id}
"""

from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import get_current_user_id
from ..config import settings
from ..database import get_async_db
from ..orders.base import PaymentMode, PaymentStatus
from .schemas import PaginatedTransactionResponse, TransactionQuery, TransactionStatusResponse
from .service import TransactionService

router = APIRouter(tags=["transactions"])


def get_transaction_service(db: AsyncSession = Depends(get_async_db)) -> TransactionService:
    """Dependency for TransactionService"""
    return TransactionService(db)


def transaction_query(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: str = Query("payment_time", description="Unrecognized fields sort by createdAt"),
    order: Literal["asc", "desc"] = Query("desc"),
    status: Optional[PaymentStatus] = Query(None),
    payment_mode: Optional[PaymentMode] = Query(None),
    gateway_name: Optional[str] = Query(None),
    # Named apart from the school route's path parameter
    school: Optional[str] = Query(None, alias="school_id"),
) -> TransactionQuery:
    return TransactionQuery(
        page=page,
        limit=limit,
        sort=sort,
        order=order,
        status=status,
        payment_mode=payment_mode,
        gateway_name=gateway_name,
        school_id=school,
    )


@router.get("/transactions", response_model=PaginatedTransactionResponse)
async def get_all_transactions(
    user_id: Annotated[str, Depends(get_current_user_id)],
    query: TransactionQuery = Depends(transaction_query),
    service: TransactionService = Depends(get_transaction_service),
):
    """All transactions, paginated"""
    return await service.list_transactions(query)


@router.get("/transactions/school/{school_id}", response_model=PaginatedTransactionResponse)
async def get_transactions_by_school(
    school_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    query: TransactionQuery = Depends(transaction_query),
    service: TransactionService = Depends(get_transaction_service),
):
    """Transactions of a single school, paginated"""
    return await service.list_transactions(query, school_id=school_id)


@router.get("/transaction-status/{custom_order_id}", response_model=TransactionStatusResponse)
async def get_transaction_status(
    custom_order_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: TransactionService = Depends(get_transaction_service),
):
    """Latest status of one order; 404 when the order does not exist"""
    return await service.get_transaction_status(custom_order_id)
