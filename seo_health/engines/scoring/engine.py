"""
Health Aggregator - rolls every visited page of a scan into one summary
and a 0-100 health score.

Scoring Model:
- Start at 100
- Each category deducts its cap scaled by the share of affected pages:
    missing/short title  30
    missing meta         20
    missing H1           20
    4xx responses        20
    5xx responses        10
- Round half up, clamp to [0, 100]
- A scan that visited nothing scores 100
"""

from __future__ import annotations

import math
from typing import Iterable

import structlog

from seo_health.core.rule_engine import is_title_missing_or_short
from seo_health.engines.base import HealthSummary, PageSignals

logger = structlog.get_logger(__name__)


# ─────────────────────────────────────────────
# Penalty Caps
# ─────────────────────────────────────────────

PENALTY_CAPS: dict[str, float] = {
    "pages_missing_title": 30.0,
    "pages_missing_meta": 20.0,
    "pages_missing_h1": 20.0,
    "pages_4xx": 20.0,
    "pages_5xx": 10.0,
}


# ─────────────────────────────────────────────
# Aggregation
# ─────────────────────────────────────────────

def aggregate(pages: Iterable[PageSignals]) -> HealthSummary:
    """Count missing signals and status classes over all visited pages."""
    summary = HealthSummary()

    for page in pages:
        summary.total_pages_scanned += 1

        if is_title_missing_or_short(page.title):
            summary.pages_missing_title += 1
        if not page.meta_description:
            summary.pages_missing_meta += 1
        if not page.h1:
            summary.pages_missing_h1 += 1

        # 1xx and 3xx land in no bucket
        if 200 <= page.status_code < 300:
            summary.pages_2xx += 1
        elif 400 <= page.status_code < 500:
            summary.pages_4xx += 1
        elif page.status_code >= 500:
            summary.pages_5xx += 1

    return summary


def compute_health_score(summary: HealthSummary) -> int:
    """
    Score = 100 - Σ min(cap, cap × affected / total)

    Example: 10 pages, 3 missing a title, everything else clean
    → 100 - 30 × 0.3 = 91
    """
    total = summary.total_pages_scanned
    if total <= 0:
        return 100

    penalty = 0.0
    for field_name, cap in PENALTY_CAPS.items():
        affected = getattr(summary, field_name)
        penalty += min(cap, cap * affected / total)

    score = int(math.floor(100.0 - penalty + 0.5))
    score = max(0, min(100, score))

    logger.debug("Health score computed", total_pages=total, penalty=round(penalty, 2), score=score)
    return score
