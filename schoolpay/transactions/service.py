"""
Transaction view: orders LEFT OUTER JOIN order_statuses.

The count and the page are built from the same join and the same filter
list, so pagination metadata always agrees with the returned rows.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..error_handlers import NotFoundException
from ..logging_config import get_logger
from ..orders.models import Order, OrderStatus
from .pipeline import (
    SortSpec,
    build_pagination,
    compose_status_view,
    compose_transaction,
    page_offset,
    resolve_sort_field,
)
from .schemas import (
    PaginatedTransactionResponse,
    TransactionQuery,
    TransactionRecord,
    TransactionStatusResponse,
)

logger = get_logger(__name__)

_JOIN_CONDITION = OrderStatus.order_id == Order.id


class TransactionService:
    """Query engine behind the dashboard transaction views"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _filters(query: TransactionQuery, school_id: Optional[str] = None) -> List:
        """Post-join match; status-side filters drop orders without a status"""
        conditions = []
        scoped_school = school_id or query.school_id
        if scoped_school:
            conditions.append(Order.school_id == scoped_school)
        if query.gateway_name:
            conditions.append(Order.gateway_name == query.gateway_name)
        if query.status:
            conditions.append(OrderStatus.status == query.status)
        if query.payment_mode:
            conditions.append(OrderStatus.payment_mode == query.payment_mode)
        return conditions

    @staticmethod
    def _order_by(spec: SortSpec, direction: str) -> List:
        model = OrderStatus if spec.side == "status" else Order
        column = getattr(model, spec.attribute)
        primary = column.asc().nulls_first() if direction == "asc" else column.desc().nulls_last()
        # Stable tie-breaker keeps pages disjoint
        return [primary, Order.id.asc()]

    async def list_transactions(
        self,
        query: TransactionQuery,
        school_id: Optional[str] = None,
    ) -> PaginatedTransactionResponse:
        """
        Paginated, sorted, filtered transactions, optionally scoped to one school.
        """
        conditions = self._filters(query, school_id)
        sort_spec = resolve_sort_field(query.sort)

        count_stmt = (
            select(func.count(Order.id))
            .select_from(Order)
            .outerjoin(OrderStatus, _JOIN_CONDITION)
            .where(*conditions)
        )
        total_items = (await self.db.execute(count_stmt)).scalar_one()

        data_stmt = (
            select(Order, OrderStatus)
            .outerjoin(OrderStatus, _JOIN_CONDITION)
            .where(*conditions)
            .order_by(*self._order_by(sort_spec, query.order))
            .offset(page_offset(query.page, query.limit))
            .limit(query.limit)
        )
        rows = (await self.db.execute(data_stmt)).all()

        pagination = build_pagination(total_items, query.page, query.limit)

        logger.info(
            f"Retrieved {len(rows)} transactions "
            f"(page {query.page}/{pagination['total_pages']})",
            extra={"extra_data": {
                "school_id": school_id,
                "total_items": total_items,
                "sort": sort_spec.field,
                "order": query.order,
            }}
        )

        return PaginatedTransactionResponse(
            data=[TransactionRecord(**compose_transaction(order, status)) for order, status in rows],
            pagination=pagination,
            sort={"field": sort_spec.field, "order": query.order},
        )

    async def get_transaction_status(self, custom_order_id: str) -> TransactionStatusResponse:
        """
        Status of one order by its custom_order_id.

        Raises:
            NotFoundException: no order carries that custom_order_id
        """
        result = await self.db.execute(
            select(Order, OrderStatus)
            .outerjoin(OrderStatus, _JOIN_CONDITION)
            .where(Order.custom_order_id == custom_order_id)
        )
        row = result.first()

        if row is None:
            raise NotFoundException("Transaction", custom_order_id)

        order, status = row
        logger.info(
            "Retrieved transaction status",
            extra={"extra_data": {
                "custom_order_id": custom_order_id,
                "has_status": status is not None,
            }}
        )
        return TransactionStatusResponse(**compose_status_view(order, status))
