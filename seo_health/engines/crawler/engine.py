"""
Crawler Engine - bounded breadth-first page discovery for one domain.

Architecture:
- FIFO frontier seeded with the normalized start URL
- One page fetched, parsed and expanded at a time, so BFS order is
  deterministic and the visited set needs no locking
- Page budget counts successfully fetched pages only; failed fetches are
  not retried within a scan
- Links are canonicalized against the crawl origin before they enter the
  frontier; the normalized URL is the sole dedup key
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
import structlog

from seo_health.core.config import get_settings
from seo_health.core.exceptions import ScanInputError
from seo_health.engines.base import CrawledPage, FetchFailure, FetchResult
from seo_health.engines.crawler.urls import URLNormalizer
from seo_health.engines.onpage.engine import extract_signals

logger = structlog.get_logger(__name__)
settings = get_settings()


# ─────────────────────────────────────────────
# Frontier
# ─────────────────────────────────────────────

class CrawlFrontier:
    """
    FIFO queue of discovered-but-not-visited URLs plus membership sets.
    Scoped to a single scan and discarded afterwards.
    """

    def __init__(self) -> None:
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        self._visited: set[str] = set()

    def push(self, url: str) -> bool:
        """Enqueue url unless it is already visited or queued."""
        if url in self._visited or url in self._queued:
            return False
        self._queue.append(url)
        self._queued.add(url)
        return True

    def pop(self) -> str:
        url = self._queue.popleft()
        self._queued.discard(url)
        return url

    def mark_visited(self, url: str) -> None:
        self._visited.add(url)

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)


# ─────────────────────────────────────────────
# Page Fetcher
# ─────────────────────────────────────────────

class PageFetcher:
    """Performs a single bounded GET and classifies the outcome."""

    HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float | None = None,
        follow_redirects: bool = True,
        user_agent: str | None = None,
    ):
        self.http_client = http_client
        self.timeout = timeout or settings.CRAWLER_REQUEST_TIMEOUT
        self.follow_redirects = follow_redirects
        self.headers = {
            "User-Agent": user_agent or settings.CRAWLER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        }

    async def fetch(self, url: str) -> FetchResult:
        start = time.perf_counter()
        try:
            response = await self.http_client.get(
                url,
                headers=self.headers,
                follow_redirects=self.follow_redirects,
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            return FetchResult(url=url, failure=FetchFailure.TIMEOUT, error_message="Request timeout")
        except httpx.HTTPError as e:
            return FetchResult(url=url, failure=FetchFailure.NETWORK, error_message=str(e) or type(e).__name__)

        elapsed = (time.perf_counter() - start) * 1000
        content_type = response.headers.get("content-type", "")

        # A missing content type is treated as HTML
        if content_type and not any(t in content_type.lower() for t in self.HTML_CONTENT_TYPES):
            return FetchResult(
                url=url,
                status_code=response.status_code,
                content_type=content_type,
                failure=FetchFailure.NOT_HTML,
                error_message=f"Unsupported content type: {content_type}",
                elapsed_ms=elapsed,
            )

        return FetchResult(
            url=url,
            status_code=response.status_code,
            body=response.text,
            content_type=content_type,
            elapsed_ms=elapsed,
        )


# ─────────────────────────────────────────────
# Crawl Scheduler
# ─────────────────────────────────────────────

@dataclass
class CrawlStats:
    """Live crawl statistics."""
    pages_crawled: int = 0
    fetch_failures: int = 0
    urls_discovered: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time


@dataclass
class CrawlResult:
    origin: str
    pages: list[CrawledPage]
    stats: CrawlStats
    urls_found: int


PageCallback = Callable[[CrawledPage], Awaitable[None]]


class DomainCrawler:
    """
    Bounded breadth-first crawler.

    Flow:
    1. Seed the frontier with the normalized start URL
    2. Pop → skip if visited → fetch → extract signals
    3. Hand the page to on_page (persistence happens there)
    4. Enqueue same-origin links in document order
    5. Stop when the frontier is empty or max_pages pages were fetched
    """

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher
        self.logger = structlog.get_logger(self.__class__.__name__)

    async def crawl(
        self,
        seed_url: str,
        max_pages: int | None = None,
        on_page: PageCallback | None = None,
    ) -> CrawlResult:
        max_pages = settings.CRAWLER_MAX_PAGES if max_pages is None else max_pages
        origin = URLNormalizer.origin(seed_url)
        seed = URLNormalizer.normalize(seed_url, seed_url, origin) if origin else None
        if seed is None:
            raise ScanInputError(f"Start URL is not crawlable: {seed_url!r}")

        frontier = CrawlFrontier()
        frontier.push(seed)
        stats = CrawlStats(urls_discovered=1)
        pages: list[CrawledPage] = []

        self.logger.info("Crawl starting", origin=origin, seed=seed, max_pages=max_pages)

        while frontier and stats.pages_crawled < max_pages:
            url = frontier.pop()
            if frontier.is_visited(url):
                continue
            frontier.mark_visited(url)

            fetched = await self.fetcher.fetch(url)
            if not fetched.ok:
                stats.fetch_failures += 1
                self.logger.warning(
                    "Page fetch failed",
                    url=url,
                    failure=fetched.failure.value,
                    error=fetched.error_message,
                )
                continue

            signals = extract_signals(fetched.body, url, fetched.status_code, origin=origin)
            stats.pages_crawled += 1
            self.logger.debug(
                "Page scanned",
                url=url,
                status=fetched.status_code,
                n=stats.pages_crawled,
                elapsed_ms=round(fetched.elapsed_ms, 2),
            )

            page = CrawledPage(signals=signals)
            if on_page is not None:
                await on_page(page)
            pages.append(page)

            for link in signals.links:
                if frontier.push(link):
                    stats.urls_discovered += 1

        self.logger.info(
            "Crawl complete",
            origin=origin,
            pages=stats.pages_crawled,
            failures=stats.fetch_failures,
            discovered=stats.urls_discovered,
            elapsed_s=round(stats.elapsed_seconds, 2),
        )
        return CrawlResult(
            origin=origin,
            pages=pages,
            stats=stats,
            urls_found=frontier.visited_count + len(frontier),
        )


def build_http_client(**kwargs) -> httpx.AsyncClient:
    """Shared client settings for crawl and probe requests."""
    return httpx.AsyncClient(
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        **kwargs,
    )
