from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    CLERK_SECRET_KEY: str = ""
    FRONTEND_URL: Optional[str] = None

    # Runtime environment
    ENVIRONMENT: str = "development"  # development | staging | production | test
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json
    ENABLE_FILE_LOGGING: bool = False

    # Connection pool (PostgreSQL only, ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 10
    DB_POOL_RECYCLE: int = 3600  # Recycle connections hourly

    # Webhooks
    WEBHOOK_SOURCE: str = "edviron_payment"
    WEBHOOK_LOG_DEFAULT_LIMIT: int = 50

    # Transaction listing
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """postgresql:// URLs are rewritten for asyncpg"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v


settings = Settings()
