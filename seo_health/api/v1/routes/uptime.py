"""Uptime API Routes - manual sampler tick (beat runs the same tick on schedule)."""

from __future__ import annotations

import structlog
from fastapi import APIRouter

from seo_health.api.v1.deps import HTTPClient, Repository
from seo_health.engines.base import UptimeTickResult
from seo_health.engines.uptime.engine import UptimeProbe, UptimeSampler

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/check",
    response_model=UptimeTickResult,
    summary="Probe every monitored domain that is due",
)
async def check_uptime(repository: Repository, http_client: HTTPClient) -> UptimeTickResult:
    sampler = UptimeSampler(repository=repository, probe=UptimeProbe(http_client))
    result = await sampler.check_uptime()
    logger.info("Manual uptime tick", checked=result.checked, skipped=result.skipped, total=result.total)
    return result
