"""
Rule Engine - turns one page's signals into suggestion drafts.

Design:
- Rule metadata (severity, impact, effort) lives in one immutable table
  keyed by suggestion type, shared by every scan
- Evaluation is a pure function of the signals: same page, same drafts,
  same order
- Title and meta-description checks are each mutually exclusive bands;
  the remaining checks are additive
- Pages whose document failed to parse only get the HTTP status check
"""

from __future__ import annotations

from types import MappingProxyType
from typing import NamedTuple
from urllib.parse import urljoin, urlsplit

import structlog

from seo_health.engines.base import (
    Effort,
    Impact,
    PageSignals,
    Severity,
    SuggestionDraft,
    SuggestionType,
)
from seo_health.engines.crawler.urls import URLNormalizer

logger = structlog.get_logger(__name__)

# ─────────────────────────────────────────────
# Thresholds
# ─────────────────────────────────────────────

TITLE_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 60
META_MIN_LENGTH = 50
META_MAX_LENGTH = 160
ERROR_STATUS_FLOOR = 400


# ─────────────────────────────────────────────
# Rule Metadata
# ─────────────────────────────────────────────

class RuleMeta(NamedTuple):
    severity: Severity
    impact: Impact
    effort: Effort


RULES: MappingProxyType[SuggestionType, RuleMeta] = MappingProxyType({
    SuggestionType.MISSING_OR_SHORT_TITLE: RuleMeta(Severity.HIGH, Impact.VISIBILITY, Effort.QUICK_WIN),
    SuggestionType.TITLE_TOO_LONG: RuleMeta(Severity.LOW, Impact.VISIBILITY, Effort.QUICK_WIN),
    SuggestionType.MISSING_META_DESCRIPTION: RuleMeta(Severity.MEDIUM, Impact.CLICK_THROUGH, Effort.QUICK_WIN),
    SuggestionType.SHORT_META_DESCRIPTION: RuleMeta(Severity.LOW, Impact.CLICK_THROUGH, Effort.QUICK_WIN),
    SuggestionType.LONG_META_DESCRIPTION: RuleMeta(Severity.LOW, Impact.CLICK_THROUGH, Effort.QUICK_WIN),
    SuggestionType.CANONICAL_POINTS_ELSEWHERE: RuleMeta(Severity.HIGH, Impact.TECHNICAL, Effort.MODERATE),
    SuggestionType.INVALID_CANONICAL: RuleMeta(Severity.MEDIUM, Impact.TECHNICAL, Effort.MODERATE),
    SuggestionType.MISSING_H1: RuleMeta(Severity.MEDIUM, Impact.ESSENTIALS, Effort.QUICK_WIN),
    SuggestionType.NOINDEX_SET: RuleMeta(Severity.HIGH, Impact.VISIBILITY, Effort.MODERATE),
    SuggestionType.PAGE_ERROR_STATUS: RuleMeta(Severity.HIGH, Impact.TECHNICAL, Effort.DEEP_CHANGE),
})


def _draft(suggestion_type: SuggestionType, title: str, description: str) -> SuggestionDraft:
    meta = RULES[suggestion_type]
    return SuggestionDraft(
        type=suggestion_type,
        title=title,
        description=description,
        severity=meta.severity,
        impact=meta.impact,
        effort=meta.effort,
    )


# ─────────────────────────────────────────────
# Checks
# ─────────────────────────────────────────────

def is_title_missing_or_short(title: str | None) -> bool:
    """Shared with the health aggregator so both count the same pages."""
    return not title or len(title) < TITLE_MIN_LENGTH


def _check_title(title: str | None) -> SuggestionDraft | None:
    if is_title_missing_or_short(title):
        if title:
            description = (
                f'The title "{title}" is very short ({len(title)} chars). '
                "Aim for 30-60 characters."
            )
        else:
            description = "This page is missing a title tag. Add a descriptive title to improve SEO."
        return _draft(SuggestionType.MISSING_OR_SHORT_TITLE, "Add a better page title", description)

    if len(title) > TITLE_MAX_LENGTH:
        return _draft(
            SuggestionType.TITLE_TOO_LONG,
            "Title tag is too long",
            f"The title is {len(title)} characters. Search engines typically display 50-60 characters.",
        )
    return None


def _check_meta_description(meta: str | None) -> SuggestionDraft | None:
    if not meta:
        return _draft(
            SuggestionType.MISSING_META_DESCRIPTION,
            "Add a meta description",
            "This page has no meta description. Add one (150-160 characters) to improve click-through rate.",
        )
    if len(meta) < META_MIN_LENGTH:
        return _draft(
            SuggestionType.SHORT_META_DESCRIPTION,
            "Meta description is too short",
            f"Your meta description is only {len(meta)} characters. Aim for 150-160 characters.",
        )
    if len(meta) > META_MAX_LENGTH:
        return _draft(
            SuggestionType.LONG_META_DESCRIPTION,
            "Meta description is too long",
            f"Your meta description is {len(meta)} characters. It may be truncated in search results.",
        )
    return None


def _resolve_canonical(canonical: str, page_url: str) -> str | None:
    """Absolute canonical URL, or None when it is not a usable http(s) URL."""
    try:
        resolved = urljoin(page_url, canonical)
        parts = urlsplit(resolved)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    host = parts.hostname or ""
    if parts.scheme.lower() not in ("http", "https") or not host or any(c.isspace() for c in host):
        return None
    return resolved


def _check_canonical(canonical: str | None, page_url: str) -> SuggestionDraft | None:
    if not canonical:
        return None

    resolved = _resolve_canonical(canonical, page_url)
    if resolved is None:
        return _draft(
            SuggestionType.INVALID_CANONICAL,
            "Invalid canonical URL",
            f'The canonical URL "{canonical}" is malformed.',
        )

    if URLNormalizer.origin(resolved) != URLNormalizer.origin(page_url):
        return _draft(
            SuggestionType.CANONICAL_POINTS_ELSEWHERE,
            "Canonical URL points to different domain",
            f"The canonical URL points to {urlsplit(resolved).netloc}. Search engines may ignore this page.",
        )
    return None


def _check_h1(h1: str | None) -> SuggestionDraft | None:
    if h1:
        return None
    return _draft(
        SuggestionType.MISSING_H1,
        "Add an H1 heading",
        "This page has no H1 heading. Add one to improve SEO structure.",
    )


def _check_robots(robots: str | None) -> SuggestionDraft | None:
    if not robots or "noindex" not in robots.lower():
        return None
    return _draft(
        SuggestionType.NOINDEX_SET,
        "Page is set to noindex",
        "This page will not appear in search results. Remove noindex if you want it indexed.",
    )


def _check_status(status_code: int) -> SuggestionDraft | None:
    if status_code < ERROR_STATUS_FLOOR:
        return None
    return _draft(
        SuggestionType.PAGE_ERROR_STATUS,
        f"Page returns {status_code} error",
        f"This page responded with HTTP {status_code}. Fix the error to ensure accessibility.",
    )


# ─────────────────────────────────────────────
# Evaluator
# ─────────────────────────────────────────────

def evaluate(signals: PageSignals) -> list[SuggestionDraft]:
    """
    Run every check against one page.

    Output order is fixed: title, meta description, canonical, H1,
    robots, HTTP status.
    """
    if signals.parsed:
        candidates = [
            _check_title(signals.title),
            _check_meta_description(signals.meta_description),
            _check_canonical(signals.canonical, signals.url),
            _check_h1(signals.h1),
            _check_robots(signals.robots),
            _check_status(signals.status_code),
        ]
    else:
        candidates = [_check_status(signals.status_code)]

    drafts = [d for d in candidates if d is not None]
    logger.debug("Rules evaluated", url=signals.url, suggestions=len(drafts), parsed=signals.parsed)
    return drafts
