"""
Test doubles shared across the suite: an in-memory repository, a fake Redis
for the scan lock and helpers for building httpx MockTransport clients.
"""

import uuid
from datetime import date, datetime
from typing import Callable
from uuid import UUID

import httpx

from seo_health.core.exceptions import StorageError
from seo_health.engines.base import (
    DomainRecord,
    DomainReport,
    HealthSummary,
    PageRecord,
    StoredPage,
    StoredSuggestion,
    SuggestionRecord,
    UptimeCheckRecord,
    UptimeDomain,
    UptimeSummary,
)
from seo_health.storage.repository import HealthRepository


# ─────────────────────────────────────────────
# In-memory repository
# ─────────────────────────────────────────────

class InMemoryRepository(HealthRepository):
    """Dict-backed HealthRepository with the same write semantics as the SQL one."""

    def __init__(self):
        self.domains: dict[UUID, DomainRecord] = {}
        self.start_urls: dict[UUID, str] = {}
        self.pages: dict[tuple[UUID, str], StoredPage] = {}
        self.suggestions: dict[UUID, list[SuggestionRecord]] = {}
        self.scan_summaries: dict[UUID, tuple[HealthSummary, int, datetime]] = {}
        self.uptime_domains: dict[UUID, UptimeDomain] = {}
        self.uptime_checks: list[UptimeCheckRecord] = []
        self.uptime_summaries: dict[UUID, UptimeSummary] = {}
        self.registrations: dict[UUID, dict] = {}
        self.failing_urls: set[str] = set()
        self.failing_uptime_domains: set[UUID] = set()
        self.writes = 0

    # Setup helpers

    def add_domain(self, domain_name: str, final_url: str | None = None, user_id: UUID | None = None) -> DomainRecord:
        domain = DomainRecord(id=uuid.uuid4(), domain_name=domain_name, user_id=user_id)
        self.domains[domain.id] = domain
        if final_url:
            self.start_urls[domain.id] = final_url
        return domain

    def add_uptime_domain(
        self,
        domain_name: str,
        interval: int = 10,
        last_checked_at: datetime | None = None,
    ) -> UptimeDomain:
        domain = self.add_domain(domain_name)
        uptime = UptimeDomain(
            id=domain.id,
            domain_name=domain_name,
            check_interval_minutes=interval,
            last_checked_at=last_checked_at,
        )
        self.uptime_domains[domain.id] = uptime
        return uptime

    def page_urls(self, domain_id: UUID) -> list[str]:
        return [url for (d, url) in self.pages if d == domain_id]

    # HealthRepository

    async def get_domain(self, domain_id: UUID) -> DomainRecord | None:
        return self.domains.get(domain_id)

    async def get_start_url(self, domain_id: UUID) -> str | None:
        return self.start_urls.get(domain_id)

    async def upsert_page(self, page: PageRecord) -> UUID:
        if page.url in self.failing_urls:
            raise StorageError(f"Page upsert failed for {page.url}")
        key = (page.domain_id, page.url)
        existing = self.pages.get(key)
        page_id = existing.id if existing else uuid.uuid4()
        self.pages[key] = StoredPage(id=page_id, **page.model_dump())
        self.writes += 1
        return page_id

    async def replace_suggestions(self, domain_id: UUID, suggestions: list[SuggestionRecord]) -> int:
        self.suggestions[domain_id] = list(suggestions)
        self.writes += 1
        return len(suggestions)

    async def update_scan_summary(self, domain_id, summary, health_score, scanned_at) -> None:
        self.scan_summaries[domain_id] = (summary, health_score, scanned_at)
        self.writes += 1

    async def list_uptime_domains(self) -> list[UptimeDomain]:
        return list(self.uptime_domains.values())

    async def add_uptime_check(self, check: UptimeCheckRecord) -> None:
        if check.domain_id in self.failing_uptime_domains:
            raise StorageError(f"Uptime check insert failed for domain {check.domain_id}")
        self.uptime_checks.append(check)

    async def list_uptime_checks(self, domain_id: UUID, since: datetime) -> list[UptimeCheckRecord]:
        checks = [c for c in self.uptime_checks if c.domain_id == domain_id and c.checked_at >= since]
        return sorted(checks, key=lambda c: c.checked_at, reverse=True)

    async def update_uptime_summary(self, domain_id: UUID, summary: UptimeSummary) -> None:
        self.uptime_summaries[domain_id] = summary
        domain = self.uptime_domains.get(domain_id)
        if domain is not None:
            self.uptime_domains[domain_id] = domain.model_copy(update={"last_checked_at": summary.last_uptime_checked_at})

    async def update_registration(self, domain_id: UUID, expiry_date: date | None, registrar_name: str | None) -> None:
        values = self.registrations.setdefault(domain_id, {})
        if expiry_date is not None:
            values["expiry_date"] = expiry_date
        if registrar_name is not None:
            values["registrar_name"] = registrar_name

    async def get_report(self, domain_id: UUID, page_limit: int = 50) -> DomainReport | None:
        domain = self.domains.get(domain_id)
        if domain is None:
            return None
        summary, score, scanned_at = self.scan_summaries.get(domain_id, (HealthSummary(), None, None))
        pages = sorted(
            (p for (d, _), p in self.pages.items() if d == domain_id),
            key=lambda p: p.last_scanned_at,
            reverse=True,
        )[:page_limit]
        registration = self.registrations.get(domain_id, {})
        return DomainReport(
            domain_id=domain.id,
            domain_name=domain.domain_name,
            health_score=score,
            health_summary=summary,
            last_scan_at=scanned_at,
            registrar_name=registration.get("registrar_name"),
            expiry_date=registration.get("expiry_date"),
            pages=pages,
            suggestions=[
                StoredSuggestion(id=uuid.uuid4(), **s.model_dump())
                for s in self.suggestions.get(domain_id, [])
            ],
        )


# ─────────────────────────────────────────────
# Fake Redis (scan lock only)
# ─────────────────────────────────────────────

class FakeRedis:
    """Implements the SET NX / compare-and-delete subset DomainScanLock uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.closed = False

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    async def aclose(self):
        self.closed = True


# ─────────────────────────────────────────────
# HTTP helpers
# ─────────────────────────────────────────────

def html_page(title: str | None = None, body: str = "", head: str = "") -> str:
    title_tag = f"<title>{title}</title>" if title is not None else ""
    return f"<html><head>{title_tag}{head}</head><body>{body}</body></html>"


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def site_handler(pages: dict[str, str | int], requests: list[str] | None = None):
    """
    MockTransport handler serving a static site.

    Values are HTML bodies (200) or bare status codes; unknown paths are 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(str(request.url))
        path = request.url.path or "/"
        if request.url.query:
            path = f"{path}?{request.url.query.decode()}"
        content = pages.get(path)
        if content is None:
            return httpx.Response(404, html="<html><head><title>Not found here</title></head></html>")
        if isinstance(content, int):
            return httpx.Response(content, html="<html></html>")
        return httpx.Response(200, html=content)

    return handler
