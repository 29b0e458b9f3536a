"""
Tests for the Uptime Sampler.
Uses httpx MockTransport and the in-memory repository.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from seo_health.engines.base import UptimeCheckRecord, UptimeDomain, UptimeStatus
from seo_health.engines.uptime.engine import (
    UptimeProbe,
    UptimeSampler,
    availability_percent,
    compute_uptime_percentages,
    is_due,
)
from tests.support import mock_client

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def check(domain_id, status: UptimeStatus, age: timedelta) -> UptimeCheckRecord:
    return UptimeCheckRecord(domain_id=domain_id, checked_at=NOW - age, status=status)


# ─────────────────────────────────────────────
# Scheduling & math
# ─────────────────────────────────────────────

class TestIsDue:

    def make(self, last_checked_at, interval=10):
        return UptimeDomain(
            id="00000000-0000-0000-0000-000000000001",
            domain_name="example.com",
            check_interval_minutes=interval,
            last_checked_at=last_checked_at,
        )

    def test_never_checked(self):
        assert is_due(self.make(None), NOW)

    def test_interval_elapsed(self):
        assert is_due(self.make(NOW - timedelta(minutes=10)), NOW)
        assert is_due(self.make(NOW - timedelta(hours=1)), NOW)

    def test_interval_not_elapsed(self):
        assert not is_due(self.make(NOW - timedelta(minutes=9, seconds=59)), NOW)

    def test_custom_interval(self):
        assert not is_due(self.make(NOW - timedelta(minutes=30), interval=60), NOW)


class TestAvailability:

    def test_empty_window_is_100(self):
        assert availability_percent([]) == 100.0

    def test_rounds_to_two_places(self):
        checks = [check("00000000-0000-0000-0000-000000000001", s, timedelta()) for s in
                  (UptimeStatus.UP, UptimeStatus.UP, UptimeStatus.DOWN)]
        assert availability_percent(checks) == 66.67

    def test_windows(self):
        domain_id = "00000000-0000-0000-0000-000000000001"
        checks = [
            check(domain_id, UptimeStatus.UP, timedelta(hours=1)),
            check(domain_id, UptimeStatus.DOWN, timedelta(days=2)),
            check(domain_id, UptimeStatus.DOWN, timedelta(days=3)),
            check(domain_id, UptimeStatus.UP, timedelta(days=6)),
        ]
        assert compute_uptime_percentages(checks, NOW) == (100.0, 50.0)

    def test_window_edges_inclusive(self):
        domain_id = "00000000-0000-0000-0000-000000000001"
        checks = [check(domain_id, UptimeStatus.DOWN, timedelta(hours=24))]
        assert compute_uptime_percentages(checks, NOW) == (0.0, 0.0)


# ─────────────────────────────────────────────
# Probe
# ─────────────────────────────────────────────

class TestUptimeProbe:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, expected", [
        (200, UptimeStatus.UP),
        (301, UptimeStatus.UP),
        (399, UptimeStatus.UP),
        (404, UptimeStatus.DOWN),
        (503, UptimeStatus.DOWN),
    ])
    async def test_status_classification(self, status, expected):
        async with mock_client(lambda request: httpx.Response(status)) as client:
            result = await UptimeProbe(client).probe("example.com")
        assert result.status == expected
        assert result.http_status == status
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_probes_https_root(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200)

        async with mock_client(handler) as client:
            await UptimeProbe(client).probe("example.com")
        assert [url.rstrip("/") for url in seen] == ["https://example.com"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["https://example.com", "http://example.com"])
    async def test_scheme_prefixed_domain_name(self, name):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200)

        async with mock_client(handler) as client:
            result = await UptimeProbe(client).probe(name)
        assert result.status == UptimeStatus.UP
        assert [url.rstrip("/") for url in seen] == [name]

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/":
                return httpx.Response(301, headers={"location": "https://example.com/home"})
            return httpx.Response(500)

        async with mock_client(handler) as client:
            result = await UptimeProbe(client).probe("example.com")
        assert result.status == UptimeStatus.DOWN
        assert result.http_status == 500

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with mock_client(handler) as client:
            result = await UptimeProbe(client).probe("example.com")
        assert result.status == UptimeStatus.DOWN
        assert result.http_status is None
        assert result.response_time_ms is None
        assert result.error_message == "Request timeout"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        async with mock_client(handler) as client:
            result = await UptimeProbe(client).probe("example.com")
        assert result.status == UptimeStatus.DOWN
        assert result.error_message == "Name or service not known"


# ─────────────────────────────────────────────
# Sampler
# ─────────────────────────────────────────────

class TestUptimeSampler:

    @pytest.mark.asyncio
    async def test_tick_counts(self, repository):
        repository.add_uptime_domain("due.com")
        repository.add_uptime_domain("recent.com", last_checked_at=NOW - timedelta(minutes=2))
        repository.add_uptime_domain("stale.com", last_checked_at=NOW - timedelta(minutes=15))

        async with mock_client(lambda request: httpx.Response(200)) as client:
            sampler = UptimeSampler(repository, UptimeProbe(client))
            result = await sampler.check_uptime(now=NOW)

        assert (result.checked, result.skipped, result.total) == (2, 1, 3)
        assert len(repository.uptime_checks) == 2

    @pytest.mark.asyncio
    async def test_timeout_sample_after_up_sample_is_fifty_percent(self, repository):
        domain = repository.add_uptime_domain("flaky.com")
        repository.uptime_checks.append(check(domain.id, UptimeStatus.UP, timedelta(minutes=10)))

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with mock_client(handler) as client:
            await UptimeSampler(repository, UptimeProbe(client)).check_uptime(now=NOW)

        latest = repository.uptime_checks[-1]
        assert latest.status == UptimeStatus.DOWN
        assert latest.http_status is None
        assert latest.error_message == "Request timeout"

        summary = repository.uptime_summaries[domain.id]
        assert summary.last_uptime_status == UptimeStatus.DOWN
        assert summary.last_uptime_checked_at == NOW
        assert summary.last_response_time_ms is None
        assert summary.uptime_24h_percent == 50.0
        assert summary.uptime_7d_percent == 50.0

    @pytest.mark.asyncio
    async def test_one_domain_failure_does_not_block_others(self, repository):
        broken = repository.add_uptime_domain("broken.com")
        healthy = repository.add_uptime_domain("healthy.com")
        repository.failing_uptime_domains.add(broken.id)

        async with mock_client(lambda request: httpx.Response(200)) as client:
            result = await UptimeSampler(repository, UptimeProbe(client)).check_uptime(now=NOW)

        assert result.checked == 2
        assert broken.id not in repository.uptime_summaries
        assert repository.uptime_summaries[healthy.id].uptime_24h_percent == 100.0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, repository):
        first = repository.add_uptime_domain("one.com")
        second = repository.add_uptime_domain("two.com")

        original = repository.list_uptime_checks

        async def flaky_list(domain_id, since):
            if domain_id == first.id:
                raise RuntimeError("connection reset")
            return await original(domain_id, since)

        repository.list_uptime_checks = flaky_list

        async with mock_client(lambda request: httpx.Response(200)) as client:
            result = await UptimeSampler(repository, UptimeProbe(client)).check_uptime(now=NOW)

        assert result.checked == 2
        assert second.id in repository.uptime_summaries

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, repository):
        for i in range(6):
            repository.add_uptime_domain(f"site{i}.com")

        in_flight = 0
        peak = 0

        class SlowProbe(UptimeProbe):
            async def probe(self, domain_name):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return await super().probe(domain_name)

        async with mock_client(lambda request: httpx.Response(200)) as client:
            await UptimeSampler(repository, SlowProbe(client), max_concurrency=2).check_uptime(now=NOW)

        assert peak == 2
        assert len(repository.uptime_checks) == 6
