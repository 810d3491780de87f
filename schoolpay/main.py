# schoolpay/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .logging_config import setup_logging, get_logger
from .error_handlers import register_exception_handlers
from .middleware import register_middleware
from .database import check_database, close_engine

from .orders.router import router as orders_router
from .webhooks.router import router as webhooks_router
from .transactions.router import router as transactions_router

logger = get_logger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    logger.info("Starting SchoolPay API")
    logger.info(
        "Application configuration",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "database": settings.DATABASE_URL.split("@")[-1],
                "webhook_source": settings.WEBHOOK_SOURCE,
            }
        }
    )

    try:
        await check_database()
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}", exc_info=True)
        raise

    logger.info("SchoolPay API is ready to accept requests")

    yield

    logger.info("Shutting down SchoolPay API")
    await close_engine()


# ============================================================================
# CREATE FASTAPI APP
# ============================================================================

# Setup logging BEFORE creating the app
setup_logging()

app = FastAPI(
    title="SchoolPay API",
    description="School fee payment administration: orders, gateway webhooks and transaction reporting",
    version=API_VERSION,
    lifespan=lifespan,
)

register_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(orders_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")

logger.info("All routers registered")


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION
    }


@app.get("/")
async def root():
    return {
        "message": "SchoolPay API",
        "version": API_VERSION,
        "docs": "/docs"
    }
