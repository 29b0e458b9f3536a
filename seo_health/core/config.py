"""
Configuration system with environment-based settings.
Uses pydantic-settings for validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "seo-health"
    APP_VERSION: str = "1.0.0"
    ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    SECRET_KEY: str = Field(..., min_length=32)

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Database: plain str to avoid pydantic MultiHostUrl mangling the username
    POSTGRES_DSN: str = Field(..., description="PostgreSQL connection string")
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_MAX_OVERFLOW: int = 40
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_ECHO: bool = False
    POSTGRES_SSL: bool = False                # pgbouncer-fronted hosted Postgres (migrations)

    # Redis
    REDIS_DSN: RedisDsn = Field(..., description="Redis connection string")
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: float = 5.0

    # Celery
    CELERY_BROKER_URL: str = Field(..., description="Celery broker URL (Redis)")
    CELERY_RESULT_BACKEND: str = Field(..., description="Celery result backend")
    CELERY_TASK_SOFT_TIME_LIMIT: int = 900    # 15 minutes
    CELERY_TASK_TIME_LIMIT: int = 1200        # 20 minutes hard limit
    CELERY_MAX_RETRIES: int = 3
    CELERY_RETRY_BACKOFF: int = 60

    # Crawler
    CRAWLER_MAX_PAGES: int = 50
    CRAWLER_MAX_PAGES_LIMIT: int = 500
    CRAWLER_REQUEST_TIMEOUT: float = 15.0
    CRAWLER_USER_AGENT: str = "SEOHealthBot/1.0 (Page Scanner)"

    # Scans of the same domain are serialized through a Redis lock
    SCAN_LOCK_TTL: int = 1800

    # Uptime
    UPTIME_REQUEST_TIMEOUT: float = 10.0
    UPTIME_MAX_CONCURRENCY: int = 10
    UPTIME_DEFAULT_INTERVAL_MINUTES: int = 10
    UPTIME_SCHEDULE_SECONDS: int = 300
    UPTIME_USER_AGENT: str = "SEOHealth-UptimeMonitor/1.0"

    # Registration (RDAP)
    RDAP_BOOTSTRAP_URL: str = "https://rdap-bootstrap.arin.net/bootstrap/domain"
    RDAP_REQUEST_TIMEOUT: float = 15.0
    RDAP_USER_AGENT: str = "SEOHealth/1.0 (WHOIS Lookup)"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors(cls, v: str | list) -> list:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def postgres_url(self) -> str:
        """Async URL for SQLAlchemy + asyncpg."""
        url = self.POSTGRES_DSN
        for scheme in ("postgresql+asyncpg://", "postgresql+psycopg2://", "postgresql://", "postgres://"):
            if url.startswith(scheme):
                return "postgresql+asyncpg://" + url[len(scheme):]
        return url


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - created once per process."""
    return Settings()
