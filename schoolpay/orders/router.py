# schoolpay/orders/router.py
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import get_current_user_id
from ..database import get_async_db
from .schemas import CreateOrderRequest, OrderListResponse, OrderResponse
from .service import OrderService

router = APIRouter(prefix="/payment", tags=["orders"])


def get_order_service(db: AsyncSession = Depends(get_async_db)) -> OrderService:
    """Dependency for OrderService"""
    return OrderService(db)


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    order_service: OrderService = Depends(get_order_service),
):
    """
    Register a fee-payment order.

    The gateway collect request itself is created by the payment-link
    flow; this stores the order the gateway will later report on.
    """
    order = await order_service.create_order(request)
    return OrderResponse.model_validate(order)


@router.get("/order/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    order_service: OrderService = Depends(get_order_service),
):
    order = await order_service.get_order(order_id)
    return OrderResponse.model_validate(order)


@router.get("/orders/school/{school_id}", response_model=OrderListResponse)
async def get_orders_by_school(
    school_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    order_service: OrderService = Depends(get_order_service),
):
    orders = await order_service.list_orders_by_school(school_id)
    return OrderListResponse(
        data=[OrderResponse.model_validate(o) for o in orders],
        count=len(orders),
    )
