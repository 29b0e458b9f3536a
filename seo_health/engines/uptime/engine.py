"""
Uptime Sampler - periodic availability probes for monitored domains.

Flow per tick:
1. Load every domain with uptime monitoring enabled
2. Skip domains whose interval has not elapsed since their last sample
3. Probe the due ones concurrently (bounded by a semaphore)
4. Append one check per probe, then recompute the rolling 24h / 7d
   availability and the domain's uptime summary

A probe that times out or fails to connect is a "down" sample, never
discarded. One domain's storage failure does not affect the others.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Iterable

import httpx
import structlog

from seo_health.core.config import get_settings
from seo_health.core.exceptions import StorageError
from seo_health.engines.base import (
    UptimeCheckRecord,
    UptimeDomain,
    UptimeProbeResult,
    UptimeStatus,
    UptimeSummary,
    UptimeTickResult,
)
from seo_health.engines.pipeline import default_start_url
from seo_health.storage.repository import HealthRepository

logger = structlog.get_logger(__name__)
settings = get_settings()

WINDOW_24H = timedelta(hours=24)
WINDOW_7D = timedelta(days=7)


# ─────────────────────────────────────────────
# Scheduling & availability math
# ─────────────────────────────────────────────

def is_due(domain: UptimeDomain, now: datetime) -> bool:
    """Never checked, or at least one full interval since the last sample."""
    if domain.last_checked_at is None:
        return True
    interval = timedelta(minutes=domain.check_interval_minutes or settings.UPTIME_DEFAULT_INTERVAL_MINUTES)
    return now - domain.last_checked_at >= interval


def availability_percent(checks: Iterable[UptimeCheckRecord]) -> float:
    """Share of "up" samples, 2 decimal places; an empty window counts as 100."""
    statuses = [c.status for c in checks]
    if not statuses:
        return 100.0
    up = sum(1 for s in statuses if s == UptimeStatus.UP)
    return round(100 * up / len(statuses), 2)


def compute_uptime_percentages(checks: list[UptimeCheckRecord], now: datetime) -> tuple[float, float]:
    """(24h, 7d) availability over the checks at or after each window start."""
    since_24h = now - WINDOW_24H
    since_7d = now - WINDOW_7D
    return (
        availability_percent(c for c in checks if c.checked_at >= since_24h),
        availability_percent(c for c in checks if c.checked_at >= since_7d),
    )


# ─────────────────────────────────────────────
# Probe
# ─────────────────────────────────────────────

class UptimeProbe:
    """GET https://{domain}; 2xx and 3xx are up, everything else is down."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float | None = None,
        user_agent: str | None = None,
    ):
        self.http_client = http_client
        self.timeout = timeout or settings.UPTIME_REQUEST_TIMEOUT
        self.headers = {"User-Agent": user_agent or settings.UPTIME_USER_AGENT}

    async def probe(self, domain_name: str) -> UptimeProbeResult:
        url = default_start_url(domain_name)
        start = time.perf_counter()
        try:
            response = await self.http_client.get(
                url,
                headers=self.headers,
                follow_redirects=True,
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            return UptimeProbeResult(status=UptimeStatus.DOWN, error_message="Request timeout")
        except httpx.HTTPError as e:
            return UptimeProbeResult(status=UptimeStatus.DOWN, error_message=str(e) or type(e).__name__)

        elapsed_ms = round((time.perf_counter() - start) * 1000)
        status = UptimeStatus.UP if 200 <= response.status_code < 400 else UptimeStatus.DOWN
        return UptimeProbeResult(
            status=status,
            http_status=response.status_code,
            response_time_ms=elapsed_ms,
        )


# ─────────────────────────────────────────────
# Sampler
# ─────────────────────────────────────────────

class UptimeSampler:

    def __init__(
        self,
        repository: HealthRepository,
        probe: UptimeProbe,
        max_concurrency: int | None = None,
    ):
        self.repository = repository
        self.probe = probe
        self.max_concurrency = max_concurrency or settings.UPTIME_MAX_CONCURRENCY
        self.logger = structlog.get_logger(self.__class__.__name__)

    async def check_uptime(self, now: datetime | None = None) -> UptimeTickResult:
        """One sampler tick. `now` is fixed for the whole tick."""
        now = now or datetime.now(timezone.utc)
        domains = await self.repository.list_uptime_domains()
        due = [d for d in domains if is_due(d, now)]

        self.logger.info("Uptime tick", total=len(domains), due=len(due))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(domain: UptimeDomain) -> None:
            async with semaphore:
                await self.sample(domain, now)

        results = await asyncio.gather(*(bounded(d) for d in due), return_exceptions=True)
        for domain, result in zip(due, results):
            if isinstance(result, Exception):
                self.logger.error(
                    "Uptime sample failed",
                    domain_id=str(domain.id),
                    domain=domain.domain_name,
                    error=str(result),
                    exc_info=result,
                )

        return UptimeTickResult(checked=len(due), skipped=len(domains) - len(due), total=len(domains))

    async def sample(self, domain: UptimeDomain, now: datetime) -> UptimeSummary | None:
        """
        Probe one domain and record the result.

        Returns None when the check row could not be stored; the summary is
        left untouched so it never reflects a sample that does not exist.
        """
        result = await self.probe.probe(domain.domain_name)

        try:
            await self.repository.add_uptime_check(UptimeCheckRecord(
                domain_id=domain.id,
                checked_at=now,
                status=result.status,
                http_status=result.http_status,
                response_time_ms=result.response_time_ms,
                error_message=result.error_message,
            ))
        except StorageError as e:
            self.logger.error("Uptime check not stored", domain=domain.domain_name, error=str(e))
            return None

        checks = await self.repository.list_uptime_checks(domain.id, since=now - WINDOW_7D)
        uptime_24h, uptime_7d = compute_uptime_percentages(checks, now)

        summary = UptimeSummary(
            last_uptime_status=result.status,
            last_uptime_checked_at=now,
            last_response_time_ms=result.response_time_ms,
            uptime_24h_percent=uptime_24h,
            uptime_7d_percent=uptime_7d,
        )
        await self.repository.update_uptime_summary(domain.id, summary)

        self.logger.info(
            "Uptime sampled",
            domain=domain.domain_name,
            status=result.status.value,
            http_status=result.http_status,
            response_time_ms=result.response_time_ms,
            uptime_24h=uptime_24h,
            uptime_7d=uptime_7d,
        )
        return summary
