"""Tests for the health aggregator and score formula."""

import pytest

from seo_health.engines.base import HealthSummary, PageSignals
from seo_health.engines.scoring.engine import PENALTY_CAPS, aggregate, compute_health_score


def signals(status: int = 200, title: str | None = "A good title", meta: str | None = "Meta", h1: str | None = "H1", **kw) -> PageSignals:
    return PageSignals(
        url=kw.pop("url", "https://example.com/"),
        status_code=status,
        title=title,
        meta_description=meta,
        h1=h1,
        **kw,
    )


class TestAggregate:

    def test_empty(self):
        summary = aggregate([])
        assert summary == HealthSummary()
        assert compute_health_score(summary) == 100

    def test_counts_missing_signals(self):
        summary = aggregate([
            signals(title="Hi", meta=None, h1=None),
            signals(title=None),
            signals(meta=None),
            signals(),
        ])
        assert summary.total_pages_scanned == 4
        assert summary.pages_missing_title == 2
        assert summary.pages_missing_meta == 2
        assert summary.pages_missing_h1 == 1
        assert summary.pages_2xx == 4

    def test_status_buckets(self):
        summary = aggregate([signals(s) for s in (200, 204, 301, 404, 410, 500, 503)])
        assert summary.pages_2xx == 2
        assert summary.pages_4xx == 2
        assert summary.pages_5xx == 2
        assert summary.total_pages_scanned == 7

    def test_unparsed_page_counts_as_missing(self):
        summary = aggregate([PageSignals(url="https://example.com/", status_code=200, parsed=False)])
        assert summary.pages_missing_title == 1
        assert summary.pages_missing_meta == 1
        assert summary.pages_missing_h1 == 1

    def test_counts_bounded_by_total(self):
        pages = [signals(title=None, meta=None, h1=None, status=500) for _ in range(5)]
        summary = aggregate(pages)
        for field in ("pages_missing_title", "pages_missing_meta", "pages_missing_h1", "pages_5xx"):
            assert 0 <= getattr(summary, field) <= summary.total_pages_scanned

    def test_camel_case_serialization(self):
        dumped = aggregate([signals()]).model_dump(by_alias=True)
        assert dumped["totalPagesScanned"] == 1
        assert dumped["pages2xx"] == 1
        assert "pagesMissingTitle" in dumped


class TestComputeHealthScore:

    def test_three_of_ten_missing_titles(self):
        summary = HealthSummary(total_pages_scanned=10, pages_missing_title=3, pages_2xx=10)
        assert compute_health_score(summary) == 91

    def test_everything_broken_is_zero(self):
        summary = HealthSummary(
            total_pages_scanned=4,
            pages_missing_title=4,
            pages_missing_meta=4,
            pages_missing_h1=4,
            pages_4xx=4,
            pages_5xx=4,
        )
        assert compute_health_score(summary) == 0

    def test_rounds_half_up(self):
        # 100 - 20 * 1/8 = 97.5
        summary = HealthSummary(total_pages_scanned=8, pages_missing_meta=1)
        assert compute_health_score(summary) == 98

    def test_penalty_capped_per_category(self):
        summary = HealthSummary(total_pages_scanned=2, pages_5xx=10)
        assert compute_health_score(summary) == 90

    @pytest.mark.parametrize("field", list(PENALTY_CAPS))
    def test_monotonic_in_each_category(self, field):
        scores = [
            compute_health_score(HealthSummary(total_pages_scanned=20, **{field: count}))
            for count in range(0, 21)
        ]
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert all(0 <= s <= 100 for s in scores)
        assert scores[0] == 100
        assert scores[-1] == 100 - int(PENALTY_CAPS[field])
