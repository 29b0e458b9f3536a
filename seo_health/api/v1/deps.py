"""Shared FastAPI dependencies for the v1 routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends

from seo_health.core.database import AsyncSessionLocal
from seo_health.engines.crawler.engine import build_http_client
from seo_health.storage.repository import HealthRepository
from seo_health.storage.sql import SQLAlchemyRepository


def get_repository() -> HealthRepository:
    return SQLAlchemyRepository(AsyncSessionLocal)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Request-scoped outbound client for in-process scans, probes and RDAP lookups."""
    async with build_http_client() as client:
        yield client


Repository = Annotated[HealthRepository, Depends(get_repository)]
HTTPClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
