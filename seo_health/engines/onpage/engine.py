"""
On-Page Signal Extractor

Parses one HTML document into the fixed signal set the rule engine and
health aggregator consume:
- First <title> text
- <meta name="description"> content
- <link rel="canonical"> href
- <meta name="robots"> content
- First <h1> text
- Same-origin outbound links, normalized, in document order

Pure function, no I/O. Malformed markup never raises: the caller gets a
signals record with every optional field absent and parsed=False.
"""

from __future__ import annotations

import structlog
from bs4 import BeautifulSoup, Tag

from seo_health.engines.base import PageSignals
from seo_health.engines.crawler.urls import URLNormalizer

logger = structlog.get_logger(__name__)


def _clean(value: object) -> str | None:
    """Trim; empty strings count as absent."""
    if value is None:
        return None
    if isinstance(value, list):  # multi-valued attributes come back as lists
        value = " ".join(value)
    text = str(value).strip()
    return text or None


def _meta_content(soup: BeautifulSoup, name: str) -> str | None:
    for tag in soup.find_all("meta"):
        if (tag.get("name") or "").strip().lower() == name:
            return _clean(tag.get("content"))
    return None


def _canonical_href(soup: BeautifulSoup) -> str | None:
    for tag in soup.find_all("link"):
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "canonical" in (r.lower() for r in rel):
            return _clean(tag.get("href"))
    return None


def _first_text(soup: BeautifulSoup, tag_name: str) -> str | None:
    tag = soup.find(tag_name)
    if not isinstance(tag, Tag):
        return None
    return _clean(tag.get_text())


def _same_origin_links(soup: BeautifulSoup, page_url: str, origin: str | None) -> list[str]:
    if origin is None:
        origin = URLNormalizer.origin(page_url)

    links: list[str] = []
    seen: set[str] = set()
    for a in soup.find_all("a", href=True):
        normalized = URLNormalizer.normalize(a["href"], page_url, origin)
        if normalized and normalized not in seen:
            seen.add(normalized)
            links.append(normalized)
    return links


def extract_signals(
    html: str,
    page_url: str,
    status_code: int,
    origin: str | None = None,
) -> PageSignals:
    """
    Extract SEO signals from html fetched at page_url.

    origin defaults to page_url's own origin; the crawler passes the
    crawl's origin so links are filtered against the seed, not the page.
    """
    try:
        soup = BeautifulSoup(html or "", "lxml")
        return PageSignals(
            url=page_url,
            status_code=status_code,
            title=_first_text(soup, "title"),
            meta_description=_meta_content(soup, "description"),
            canonical=_canonical_href(soup),
            robots=_meta_content(soup, "robots"),
            h1=_first_text(soup, "h1"),
            links=_same_origin_links(soup, page_url, origin),
        )
    except Exception as e:
        logger.warning("HTML parse error", url=page_url, error=str(e))
        return PageSignals(url=page_url, status_code=status_code, parsed=False)
