"""Health check endpoints for load balancer and monitoring."""

import sqlalchemy
from fastapi import APIRouter
from pydantic import BaseModel

from seo_health.core.config import get_settings
from seo_health.core.database import AsyncSessionLocal
from seo_health.core.redis import get_redis_client

router = APIRouter()
settings = get_settings()


class HealthResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, str]


async def _check_database() -> str:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(sqlalchemy.text("SELECT 1"))
        return "healthy"
    except Exception as e:
        return f"unhealthy: {e}"


async def _check_redis() -> str:
    try:
        redis = await get_redis_client()
        await redis.ping()
        return "healthy"
    except Exception as e:
        return f"unhealthy: {e}"


@router.get("", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"
    return HealthResponse(status=overall, version=settings.APP_VERSION, checks=checks)


@router.get("/ready", include_in_schema=False)
async def readiness() -> dict:
    """Kubernetes readiness probe."""
    return {"ready": True}


@router.get("/live", include_in_schema=False)
async def liveness() -> dict:
    """Kubernetes liveness probe."""
    return {"alive": True}
