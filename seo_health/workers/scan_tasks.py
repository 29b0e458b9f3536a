"""
Scan Tasks - Celery entry points for domain scans and uptime ticks.

Flow:
- scan_domain_task()  → takes the per-domain Redis lock, runs one full scan
- check_uptime_task() → one uptime sampler tick (scheduled by beat)

Error handling:
- A scan that hits the soft time limit or fails unexpectedly is retried
  with linear backoff, up to CELERY_MAX_RETRIES times
- A missing domain or an uncrawlable start URL is final: no retry
- A scan rejected because another scan holds the lock is dropped
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import structlog
from celery.exceptions import SoftTimeLimitExceeded

from seo_health.core.config import get_settings
from seo_health.core.database import worker_sessionmaker
from seo_health.core.exceptions import DomainNotFoundError, ScanInProgressError, ScanInputError
from seo_health.core.logging import bind_scan_context
from seo_health.core.redis import DomainScanLock, create_task_redis_client
from seo_health.engines.crawler.engine import DomainCrawler, PageFetcher, build_http_client
from seo_health.engines.pipeline import DomainScanPipeline
from seo_health.engines.uptime.engine import UptimeProbe, UptimeSampler
from seo_health.storage.sql import SQLAlchemyRepository
from seo_health.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
settings = get_settings()


def run_async(coro):
    """
    Run an async coroutine in a Celery (sync) task context.

    A soft time limit is raised from a signal handler while the loop is
    blocked in I/O, leaving the coroutine suspended mid-await. It is
    cancelled and driven to completion before the loop closes so that its
    context managers (scan lock, sessions, HTTP client) exit.
    """
    loop = asyncio.new_event_loop()
    task = loop.create_task(coro)
    try:
        return loop.run_until_complete(task)
    except BaseException:
        if not task.done():
            task.cancel()
            try:
                loop.run_until_complete(task)
            except asyncio.CancelledError:
                pass
            except Exception as cleanup_error:
                logger.warning("Interrupted task failed during cleanup", error=str(cleanup_error))
        raise
    finally:
        loop.close()


# ─────────────────────────────────────────────
# Task: Scan Domain
# ─────────────────────────────────────────────

@celery_app.task(
    name="seo_health.workers.scan_tasks.scan_domain_task",
    bind=True,
    queue="crawl_queue",
    soft_time_limit=settings.CELERY_TASK_SOFT_TIME_LIMIT,
    time_limit=settings.CELERY_TASK_TIME_LIMIT,
    max_retries=settings.CELERY_MAX_RETRIES,
    acks_late=True,
)
def scan_domain_task(self, domain_id: str, max_pages: int | None = None) -> dict:
    """Crawl and analyze one domain, replacing its summary and suggestions."""
    bind_scan_context(domain_id, attempt=self.request.retries)
    logger.info("Starting scan task", max_pages=max_pages)

    try:
        result = run_async(_run_scan(UUID(domain_id), max_pages))
        return result.model_dump(mode="json", by_alias=True)

    except ScanInProgressError:
        logger.warning("Scan already running, skipping", domain_id=domain_id)
        return {"status": "skipped", "domainId": domain_id, "reason": "scan_in_progress"}

    except (DomainNotFoundError, ScanInputError) as exc:
        logger.error("Scan rejected", domain_id=domain_id, error=str(exc))
        raise

    except SoftTimeLimitExceeded as exc:
        logger.error("Scan task timed out", domain_id=domain_id)
        raise self.retry(exc=exc, countdown=settings.CELERY_RETRY_BACKOFF)

    except Exception as exc:
        logger.error("Scan task failed", domain_id=domain_id, error=str(exc), exc_info=True)
        countdown = settings.CELERY_RETRY_BACKOFF * (self.request.retries + 1)
        raise self.retry(exc=exc, countdown=countdown)


async def _run_scan(domain_id: UUID, max_pages: int | None):
    redis = create_task_redis_client()
    try:
        async with DomainScanLock(redis, domain_id):
            async with worker_sessionmaker() as session_factory, build_http_client() as http_client:
                pipeline = DomainScanPipeline(
                    repository=SQLAlchemyRepository(session_factory),
                    crawler=DomainCrawler(PageFetcher(http_client)),
                )
                return await pipeline.scan(domain_id, max_pages=max_pages)
    finally:
        await redis.aclose()


# ─────────────────────────────────────────────
# Task: Uptime Tick
# ─────────────────────────────────────────────

@celery_app.task(
    name="seo_health.workers.scan_tasks.check_uptime_task",
    queue="monitor_queue",
    soft_time_limit=max(60, settings.UPTIME_SCHEDULE_SECONDS - 10),
)
def check_uptime_task() -> dict:
    """Probe every monitored domain whose interval has elapsed."""
    try:
        result = run_async(_run_uptime_tick())
    except SoftTimeLimitExceeded:
        # The next beat tick picks up whatever was not sampled
        logger.error("Uptime tick timed out")
        raise

    logger.info("Uptime tick complete", checked=result.checked, skipped=result.skipped, total=result.total)
    return result.model_dump()


async def _run_uptime_tick():
    async with worker_sessionmaker() as session_factory, build_http_client() as http_client:
        sampler = UptimeSampler(
            repository=SQLAlchemyRepository(session_factory),
            probe=UptimeProbe(http_client),
        )
        return await sampler.check_uptime()
