"""
Atomic UPSERT for rows guarded by a unique key.

Concurrent webhook deliveries for the same order race on the unique
order_id of order_statuses. The store decides the winner: PostgreSQL and
SQLite get a single INSERT ... ON CONFLICT DO UPDATE statement, and any
other dialect falls back to INSERT, then UPDATE when the unique
constraint fires.
"""

from typing import Any, Dict, TypeVar

from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

_ON_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _key_filter(model_class, unique_keys: Dict[str, Any]):
    return [getattr(model_class, key) == value for key, value in unique_keys.items()]


async def upsert_unique_record(
    db: AsyncSession,
    model_class,
    unique_keys: Dict[str, Any],
    values: Dict[str, Any],
) -> T:
    """
    Insert a record, or update it in place if the unique key already exists.

    Args:
        db: AsyncSession for database operations
        model_class: SQLAlchemy ORM model class
        unique_keys: Columns backing the unique constraint (e.g. {"order_id": ...})
        values: Columns written on insert and overwritten on conflict

    Returns:
        The stored record, freshly loaded

    Example:
        status = await upsert_unique_record(
            db,
            OrderStatus,
            unique_keys={"order_id": order.id},
            values={"status": PaymentStatus.SUCCESS, "transaction_amount": 500},
        )
    """
    dialect = db.get_bind().dialect.name
    dialect_insert = _ON_CONFLICT_INSERTS.get(dialect)

    try:
        if dialect_insert is not None:
            stmt = dialect_insert(model_class).values(**unique_keys, **values)
            stmt = stmt.on_conflict_do_update(
                index_elements=list(unique_keys.keys()),
                set_={column: stmt.excluded[column] for column in values},
            )
            await db.execute(stmt)
            action = "upserted"
        else:
            action = await _insert_or_update(db, model_class, unique_keys, values)

        await db.commit()

    except Exception as e:
        await db.rollback()
        logger.error(
            f"UPSERT failed for {model_class.__name__}",
            extra={"extra_data": {
                "model": model_class.__name__,
                "unique_keys": unique_keys,
                "error": str(e)
            }},
            exc_info=True
        )
        raise

    # populate_existing refreshes an instance already held by this session
    result = await db.execute(
        select(model_class)
        .where(*_key_filter(model_class, unique_keys))
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one()

    logger.info(
        f"UPSERT completed for {model_class.__name__}",
        extra={"extra_data": {
            "model": model_class.__name__,
            "unique_keys": unique_keys,
            "action": action,
            "dialect": dialect
        }}
    )

    return record


async def _insert_or_update(
    db: AsyncSession,
    model_class,
    unique_keys: Dict[str, Any],
    values: Dict[str, Any],
) -> str:
    """Fallback for stores without ON CONFLICT: a lost insert race becomes an update"""
    try:
        async with db.begin_nested():
            await db.execute(insert(model_class).values(**unique_keys, **values))
        return "inserted"
    except IntegrityError:
        logger.info(
            f"Unique key already present for {model_class.__name__}, retrying as update",
            extra={"extra_data": {"model": model_class.__name__, "unique_keys": unique_keys}}
        )
        await db.execute(
            update(model_class)
            .where(*_key_filter(model_class, unique_keys))
            .values(**values)
        )
        return "updated"
