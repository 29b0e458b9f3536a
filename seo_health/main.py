"""
SEO Health Service - Main Application Entry Point
FastAPI application with lifespan management.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sqlalchemy
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from seo_health.api.v1.routes import domains, health, uptime
from seo_health.core.config import get_settings
from seo_health.core.database import engine
from seo_health.core.exceptions import StorageError
from seo_health.core.logging import configure_logging
from seo_health.core.redis import get_redis_client

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Fail fast when Postgres or Redis is unreachable; dispose pools on shutdown."""
    configure_logging(role="api")
    logger.info("Starting SEO Health Service", version=settings.APP_VERSION, env=settings.ENV)

    async with engine.connect() as conn:
        await conn.execute(sqlalchemy.text("SELECT 1"))
    redis = await get_redis_client()
    await redis.ping()
    logger.info("Dependencies verified", database="ok", redis="ok")

    yield

    await redis.aclose()
    await engine.dispose()
    logger.info("Application shutdown complete")


def create_application() -> FastAPI:
    app = FastAPI(
        title="SEO Health API",
        description="Domain health scans, on-page suggestions, uptime and registration monitoring.",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(domains.router, prefix="/api/v1/domains", tags=["Domains"])
    app.include_router(uptime.router, prefix="/api/v1/uptime", tags=["Uptime"])

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable, retry later"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request.headers.get("x-request-id")},
        )

    return app


app = create_application()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run(
        "seo_health.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS if settings.ENV == "production" else 1,
        reload=settings.ENV == "development",
        log_config=None,
    )
