"""Tests for the per-domain scan lock."""

import uuid

import pytest

from seo_health.core.exceptions import ScanInProgressError
from seo_health.core.redis import DomainScanLock


class TestDomainScanLock:

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, fake_redis):
        domain_id = uuid.uuid4()
        lock = DomainScanLock(fake_redis, domain_id, ttl=60)

        async with lock:
            assert fake_redis.store[lock.key] == lock._token
        assert lock.key not in fake_redis.store

    @pytest.mark.asyncio
    async def test_second_scan_of_same_domain_rejected(self, fake_redis):
        domain_id = uuid.uuid4()

        async with DomainScanLock(fake_redis, domain_id, ttl=60):
            with pytest.raises(ScanInProgressError):
                async with DomainScanLock(fake_redis, domain_id, ttl=60):
                    pass

        # Free again once the first scan finishes
        async with DomainScanLock(fake_redis, domain_id, ttl=60):
            pass

    @pytest.mark.asyncio
    async def test_different_domains_do_not_contend(self, fake_redis):
        async with DomainScanLock(fake_redis, uuid.uuid4(), ttl=60):
            async with DomainScanLock(fake_redis, uuid.uuid4(), ttl=60):
                assert len(fake_redis.store) == 2

    @pytest.mark.asyncio
    async def test_release_leaves_foreign_token(self, fake_redis):
        domain_id = uuid.uuid4()
        lock = DomainScanLock(fake_redis, domain_id, ttl=60)
        assert await lock.acquire()

        # Lock expired and another worker took it
        fake_redis.store[lock.key] = "someone-else"
        await lock.release()

        assert fake_redis.store[lock.key] == "someone-else"

    @pytest.mark.asyncio
    async def test_lock_released_when_scan_fails(self, fake_redis):
        domain_id = uuid.uuid4()
        lock = DomainScanLock(fake_redis, domain_id, ttl=60)

        with pytest.raises(RuntimeError):
            async with lock:
                raise RuntimeError("crawl blew up")

        assert lock.key not in fake_redis.store

    def test_key_is_namespaced(self, fake_redis):
        domain_id = uuid.uuid4()
        assert DomainScanLock(fake_redis, domain_id).key == f"seo:scan-lock:{domain_id}"
        assert DomainScanLock(fake_redis, domain_id, namespace="x").key == f"x:scan-lock:{domain_id}"
