"""API tests for the uptime tick and liveness endpoints."""

import httpx
import pytest

from seo_health.api.v1.deps import get_http_client, get_repository
from seo_health.engines.base import UptimeStatus
from seo_health.main import app
from tests.support import mock_client


@pytest.fixture
def api(repository):
    async def http_client():
        def handler(request):
            if request.url.host == "down.com":
                return httpx.Response(503)
            return httpx.Response(200)

        async with mock_client(handler) as client:
            yield client

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_http_client] = http_client
    yield httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    app.dependency_overrides.clear()


class TestUptimeCheck:

    @pytest.mark.asyncio
    async def test_tick(self, api, repository):
        up = repository.add_uptime_domain("up.com")
        down = repository.add_uptime_domain("down.com")

        async with api as client:
            resp = await client.post("/api/v1/uptime/check")

        assert resp.status_code == 200
        assert resp.json() == {"checked": 2, "skipped": 0, "total": 2}
        assert repository.uptime_summaries[up.id].last_uptime_status == UptimeStatus.UP
        assert repository.uptime_summaries[down.id].last_uptime_status == UptimeStatus.DOWN
        assert repository.uptime_summaries[down.id].uptime_24h_percent == 0.0

    @pytest.mark.asyncio
    async def test_second_tick_skips_recent(self, api, repository):
        repository.add_uptime_domain("up.com")

        async with api as client:
            await client.post("/api/v1/uptime/check")
            resp = await client.post("/api/v1/uptime/check")

        assert resp.json() == {"checked": 0, "skipped": 1, "total": 1}

    @pytest.mark.asyncio
    async def test_nothing_monitored(self, api):
        async with api as client:
            resp = await client.post("/api/v1/uptime/check")
        assert resp.json() == {"checked": 0, "skipped": 0, "total": 0}


class TestProbes:

    @pytest.mark.asyncio
    async def test_live(self, api):
        async with api as client:
            resp = await client.get("/health/live")
        assert resp.status_code == 200
        assert resp.json() == {"alive": True}

    @pytest.mark.asyncio
    async def test_ready(self, api):
        async with api as client:
            resp = await client.get("/health/ready")
        assert resp.json() == {"ready": True}

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, api):
        async with api as client:
            given = await client.get("/health/live", headers={"x-request-id": "req-42"})
            generated = await client.get("/health/live")

        assert given.headers["x-request-id"] == "req-42"
        assert generated.headers["x-request-id"]
