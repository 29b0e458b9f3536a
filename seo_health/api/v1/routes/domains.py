"""
Domain API Routes

No business logic lives here.
Routes validate input, call the pipeline or lookup, return responses.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from seo_health.api.v1.deps import HTTPClient, Repository
from seo_health.core.config import get_settings
from seo_health.core.exceptions import DomainNotFoundError, ScanInProgressError, ScanInputError
from seo_health.core.redis import DomainScanLock, RedisClient
from seo_health.engines.base import DomainReport, RegistrationInfo, ScanResult
from seo_health.engines.crawler.engine import DomainCrawler, PageFetcher
from seo_health.engines.pipeline import DomainScanPipeline
from seo_health.engines.registration.engine import RegistrationLookup
from seo_health.workers.scan_tasks import scan_domain_task

logger = structlog.get_logger(__name__)
settings = get_settings()
router = APIRouter()


# ─────────────────────────────────────────────
# Request / Response Schemas
# ─────────────────────────────────────────────

class ScanRequest(BaseModel):
    max_pages: int = Field(default=settings.CRAWLER_MAX_PAGES)

    @field_validator("max_pages")
    @classmethod
    def validate_max_pages(cls, v: int) -> int:
        if v < 1 or v > settings.CRAWLER_MAX_PAGES_LIMIT:
            raise ValueError(f"max_pages must be between 1 and {settings.CRAWLER_MAX_PAGES_LIMIT}")
        return v


class ScanDispatchResponse(BaseModel):
    domain_id: UUID
    task_id: str
    status: str = "queued"
    message: str = ""


# ─────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────

@router.post(
    "/{domain_id}/scans",
    response_model=ScanDispatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a health scan",
    description="Dispatches a background crawl of the domain. Returns immediately with the task id.",
)
async def queue_scan(domain_id: UUID, repository: Repository, request: ScanRequest | None = None) -> ScanDispatchResponse:
    request = request or ScanRequest()
    if await repository.get_domain(domain_id) is None:
        raise HTTPException(status_code=404, detail="Domain not found")

    task = scan_domain_task.apply_async(args=[str(domain_id), request.max_pages])
    logger.info("Scan queued", domain_id=str(domain_id), task_id=task.id, max_pages=request.max_pages)

    return ScanDispatchResponse(
        domain_id=domain_id,
        task_id=task.id,
        message=f"Scan started. Poll /api/v1/domains/{domain_id}/report for results.",
    )


@router.post(
    "/{domain_id}/scans/sync",
    response_model=ScanResult,
    response_model_by_alias=True,
    summary="Run a health scan in-process",
)
async def run_scan(
    domain_id: UUID,
    repository: Repository,
    http_client: HTTPClient,
    redis: RedisClient,
    request: ScanRequest | None = None,
) -> ScanResult:
    request = request or ScanRequest()
    pipeline = DomainScanPipeline(
        repository=repository,
        crawler=DomainCrawler(PageFetcher(http_client)),
    )
    try:
        async with DomainScanLock(redis, domain_id):
            return await pipeline.scan(domain_id, max_pages=request.max_pages)
    except DomainNotFoundError:
        raise HTTPException(status_code=404, detail="Domain not found")
    except ScanInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ScanInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get(
    "/{domain_id}/report",
    response_model=DomainReport,
    response_model_by_alias=True,
    summary="Latest scan summary, pages and suggestions",
)
async def get_report(domain_id: UUID, repository: Repository) -> DomainReport:
    report = await repository.get_report(domain_id, page_limit=50)
    if report is None:
        raise HTTPException(status_code=404, detail="Domain not found")
    return report


@router.post(
    "/{domain_id}/registration",
    response_model=RegistrationInfo,
    summary="Refresh registrar and expiry date via RDAP",
)
async def refresh_registration(
    domain_id: UUID,
    repository: Repository,
    http_client: HTTPClient,
) -> RegistrationInfo:
    lookup = RegistrationLookup(http_client)
    try:
        return await lookup.refresh(repository, domain_id)
    except DomainNotFoundError:
        raise HTTPException(status_code=404, detail="Domain not found")
