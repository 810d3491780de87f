# schoolpay/orders/service.py
import random
import time
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order
from .schemas import CreateOrderRequest
from ..logging_config import get_logger, log_business_event
from ..error_handlers import ConflictException, NotFoundException, ErrorCode

logger = get_logger(__name__)


def generate_custom_order_id() -> str:
    """ORD_<epoch millis>_<3 random digits>"""
    return f"ORD_{int(time.time() * 1000)}_{random.randint(0, 999):03d}"


def parse_internal_id(value: Optional[str]) -> Optional[uuid.UUID]:
    """Return the UUID when value is syntactically an internal order id, else None"""
    if not value or not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class OrderService:
    """Reads and writes the orders table"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(self, data: CreateOrderRequest) -> Order:
        """
        Register a new order.

        Raises:
            ConflictException: custom_order_id is already taken
        """
        custom_order_id = data.custom_order_id or generate_custom_order_id()

        order = Order(
            school_id=data.school_id,
            trustee_id=data.trustee_id,
            student_info=data.student_info.model_dump(by_alias=True, exclude_none=True),
            gateway_name=data.gateway_name,
            custom_order_id=custom_order_id,
        )
        self.db.add(order)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "Duplicate custom_order_id rejected",
                extra={"extra_data": {"custom_order_id": custom_order_id}}
            )
            raise ConflictException("Order", custom_order_id, error_code=ErrorCode.DUPLICATE_ORDER)

        await self.db.refresh(order)

        log_business_event(
            "order_created",
            order_id=str(order.id),
            custom_order_id=custom_order_id,
            school_id=order.school_id,
            gateway_name=order.gateway_name,
        )
        return order

    async def get_order(self, order_id: str) -> Order:
        internal_id = parse_internal_id(order_id)
        order = await self.db.get(Order, internal_id) if internal_id else None
        if not order:
            raise NotFoundException("Order", order_id)
        return order

    async def list_orders_by_school(self, school_id: str) -> List[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.school_id == school_id)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_custom_order_id(self, custom_order_id: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(Order.custom_order_id == custom_order_id)
        )
        return result.scalar_one_or_none()

    async def find_for_webhook(
        self,
        order_id: Optional[str] = None,
        custom_order_id: Optional[str] = None,
    ) -> Optional[Order]:
        """
        Resolve the order a webhook refers to. First match wins:

        1. internal id == order_id, only when order_id parses as a UUID
        2. custom_order_id == custom_order_id
        3. custom_order_id == order_id (gateways conflate the two)
        """
        internal_id = parse_internal_id(order_id)
        if internal_id:
            order = await self.db.get(Order, internal_id)
            if order:
                return order

        if custom_order_id:
            order = await self.get_by_custom_order_id(custom_order_id)
            if order:
                return order

        if order_id:
            order = await self.get_by_custom_order_id(order_id)
            if order:
                return order

        return None
