"""
Domain Scan Pipeline - one full health scan of a domain.

Flow:
1. Load the domain (missing domain aborts before any write)
2. Resolve the start URL: recorded final URL, else https://{domain_name}
3. Crawl; every visited page is upserted as soon as it is produced
4. Evaluate suggestion rules for every stored page
5. Replace the domain's suggestions in one transaction
6. Aggregate the health summary and score and store them on the domain
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog

from seo_health.core.config import get_settings
from seo_health.core.exceptions import DomainNotFoundError, ScanInputError, StorageError
from seo_health.core.rule_engine import evaluate
from seo_health.engines.base import (
    CrawledPage,
    DomainRecord,
    PageRecord,
    ScanResult,
    SuggestionRecord,
)
from seo_health.engines.crawler.engine import DomainCrawler
from seo_health.engines.scoring.engine import aggregate, compute_health_score
from seo_health.storage.repository import HealthRepository

logger = structlog.get_logger(__name__)
settings = get_settings()


def default_start_url(domain_name: str) -> str:
    name = domain_name.strip()
    if name.startswith(("http://", "https://")):
        return name
    return f"https://{name}"


class DomainScanPipeline:

    def __init__(self, repository: HealthRepository, crawler: DomainCrawler):
        self.repository = repository
        self.crawler = crawler
        self.logger = structlog.get_logger(self.__class__.__name__)

    async def scan(self, domain_id: UUID, max_pages: int | None = None) -> ScanResult:
        max_pages = settings.CRAWLER_MAX_PAGES if max_pages is None else max_pages
        if not 1 <= max_pages <= settings.CRAWLER_MAX_PAGES_LIMIT:
            raise ScanInputError(
                f"max_pages must be between 1 and {settings.CRAWLER_MAX_PAGES_LIMIT}, got {max_pages}"
            )

        domain = await self.repository.get_domain(domain_id)
        if domain is None:
            raise DomainNotFoundError(domain_id)

        start_url = await self.repository.get_start_url(domain_id) or default_start_url(domain.domain_name)
        log = self.logger.bind(domain_id=str(domain_id), domain=domain.domain_name)
        log.info("Scan starting", start_url=start_url, max_pages=max_pages)

        async def store_page(page: CrawledPage) -> None:
            record = PageRecord.from_signals(domain, page.signals, datetime.now(timezone.utc))
            try:
                page.page_id = await self.repository.upsert_page(record)
            except StorageError as e:
                log.error("Page not stored", url=page.url, error=str(e), exc_info=True)

        crawl = await self.crawler.crawl(start_url, max_pages=max_pages, on_page=store_page)
        stored = [p for p in crawl.pages if p.page_id is not None]

        suggestions = self._build_suggestions(domain, stored)
        created = await self.repository.replace_suggestions(domain.id, suggestions)

        summary = aggregate(p.signals for p in stored)
        score = compute_health_score(summary)
        await self.repository.update_scan_summary(domain.id, summary, score, datetime.now(timezone.utc))

        log.info(
            "Scan complete",
            pages_scanned=crawl.stats.pages_crawled,
            pages_stored=len(stored),
            suggestions=created,
            health_score=score,
            urls_found=crawl.urls_found,
        )
        return ScanResult(
            domain_id=domain.id,
            pages_scanned=crawl.stats.pages_crawled,
            suggestions_created=created,
            health_score=score,
            health_summary=summary,
            urls_found=crawl.urls_found,
        )

    @staticmethod
    def _build_suggestions(domain: DomainRecord, pages: list[CrawledPage]) -> list[SuggestionRecord]:
        return [
            SuggestionRecord(
                domain_id=domain.id,
                page_id=page.page_id,
                user_id=domain.user_id,
                type=draft.type,
                title=draft.title,
                description=draft.description,
                severity=draft.severity,
                impact=draft.impact,
                effort=draft.effort,
            )
            for page in pages
            for draft in evaluate(page.signals)
        ]
