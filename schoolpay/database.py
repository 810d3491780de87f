"""
Async engine, session factory and the declarative Base.

PostgreSQL (asyncpg) in deployments, SQLite (aiosqlite) in tests; the
pool settings only make sense for the former.
"""

from typing import AsyncGenerator, Any, Dict
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {}

    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "connect_args": {
            "command_timeout": 60,
            # JIT compilation slows the short joins the dashboard runs
            "server_settings": {"jit": "off"},
        },
    }


async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    **_engine_options(settings.DATABASE_URL),
)

# Objects stay readable after commit; services return them to routers
async_session = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    class_=AsyncSession,
)

logger.info(
    "Async database engine configured",
    extra={"extra_data": {
        "dialect": async_engine.dialect.name,
        "pooled": not settings.DATABASE_URL.startswith("sqlite"),
        "environment": settings.ENVIRONMENT,
    }}
)

Base = declarative_base()


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

        @router.get("/transactions")
        async def list_transactions(db: AsyncSession = Depends(get_async_db)):
            ...

    Services commit their own work; anything left uncommitted when an
    exception escapes is rolled back here.
    """
    async with async_session() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "Rolling back request session",
                extra={"extra_data": {"error": str(e), "error_type": type(e).__name__}},
                exc_info=True
            )
            await session.rollback()
            raise


@asynccontextmanager
async def get_async_db_transaction():
    """
    Unit of work outside a request (seed script, maintenance jobs):
    commits on exit, rolls back if the block raises.
    """
    async with async_session() as db:
        try:
            yield db
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(
                "Transaction rolled back",
                extra={"extra_data": {"error": str(e)}},
                exc_info=True
            )
            raise


async def check_database() -> None:
    """Raises when the store cannot be reached"""
    async with async_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_engine():
    await async_engine.dispose()
    logger.info("Database connections closed")


# Register models on Base.metadata for create_all and Alembic
from .orders import models as order_models  # noqa: E402,F401
from .webhooks import models as webhook_models  # noqa: E402,F401
