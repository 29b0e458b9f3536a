"""
PostgreSQL implementation of HealthRepository on SQLAlchemy async sessions.

Each method opens its own session from the factory and commits before
returning, so a failure in one page upsert never rolls back another.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

import structlog
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seo_health.core.exceptions import StorageError
from seo_health.engines.base import (
    DomainRecord,
    DomainReport,
    HealthSummary,
    PageRecord,
    StoredPage,
    StoredSuggestion,
    SuggestionRecord,
    UptimeCheckRecord,
    UptimeDomain,
    UptimeSummary,
)
from seo_health.models.models import Domain, DomainStatus, SitePage, Suggestion, UptimeCheck
from seo_health.storage.repository import HealthRepository

logger = structlog.get_logger(__name__)

_SEVERITY_ORDER = case(
    {"high": 0, "medium": 1, "low": 2},
    value=Suggestion.severity,
    else_=3,
)


def page_upsert_statement(page: PageRecord):
    """INSERT .. ON CONFLICT (domain_id, url) DO UPDATE, returning the row id."""
    values = page.model_dump()
    stmt = insert(SitePage).values(**values)
    set_ = {key: stmt.excluded[key] for key in values if key not in ("domain_id", "url")}
    # Core upserts bypass the ORM onupdate hook
    set_["updated_at"] = func.now()
    return stmt.on_conflict_do_update(constraint="uq_site_pages_domain_url", set_=set_).returning(SitePage.id)


class SQLAlchemyRepository(HealthRepository):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ─────────────────────────────────────────
    # Domains
    # ─────────────────────────────────────────

    async def get_domain(self, domain_id: UUID) -> DomainRecord | None:
        async with self.session_factory() as session:
            domain = await session.get(Domain, domain_id)
            if domain is None:
                return None
            return DomainRecord(id=domain.id, domain_name=domain.domain_name, user_id=domain.user_id)

    async def get_start_url(self, domain_id: UUID) -> str | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DomainStatus.final_url).where(DomainStatus.domain_id == domain_id)
            )
            return result.scalar_one_or_none()

    # ─────────────────────────────────────────
    # Scan results
    # ─────────────────────────────────────────

    async def upsert_page(self, page: PageRecord) -> UUID:
        stmt = page_upsert_statement(page)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                page_id = result.scalar_one()
                await session.commit()
                return page_id
        except SQLAlchemyError as e:
            raise StorageError(f"Page upsert failed for {page.url}: {e}") from e

    async def replace_suggestions(self, domain_id: UUID, suggestions: list[SuggestionRecord]) -> int:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(Suggestion).where(Suggestion.domain_id == domain_id))
                    session.add_all([
                        Suggestion(
                            domain_id=s.domain_id,
                            page_id=s.page_id,
                            user_id=s.user_id,
                            scope=s.scope,
                            suggestion_type=s.type.value,
                            title=s.title,
                            description=s.description,
                            severity=s.severity.value,
                            impact=s.impact.value,
                            effort=s.effort.value,
                        )
                        for s in suggestions
                    ])
        except SQLAlchemyError as e:
            raise StorageError(f"Suggestion replacement failed for domain {domain_id}: {e}") from e

        logger.info("Suggestions replaced", domain_id=str(domain_id), count=len(suggestions))
        return len(suggestions)

    async def update_scan_summary(
        self,
        domain_id: UUID,
        summary: HealthSummary,
        health_score: int,
        scanned_at: datetime,
    ) -> None:
        await self._update_domain(
            domain_id,
            health_score=health_score,
            last_scan_at=scanned_at,
            **summary.model_dump(by_alias=False),
        )

    # ─────────────────────────────────────────
    # Uptime
    # ─────────────────────────────────────────

    async def list_uptime_domains(self) -> list[UptimeDomain]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Domain).where(Domain.uptime_enabled.is_(True)).order_by(Domain.created_at)
            )
            return [
                UptimeDomain(
                    id=d.id,
                    domain_name=d.domain_name,
                    check_interval_minutes=d.uptime_check_interval_minutes,
                    last_checked_at=d.last_uptime_checked_at,
                )
                for d in result.scalars().all()
            ]

    async def add_uptime_check(self, check: UptimeCheckRecord) -> None:
        try:
            async with self.session_factory() as session:
                session.add(UptimeCheck(**check.model_dump(mode="python") | {"status": check.status.value}))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Uptime check insert failed for domain {check.domain_id}: {e}") from e

    async def list_uptime_checks(self, domain_id: UUID, since: datetime) -> list[UptimeCheckRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UptimeCheck)
                .where(UptimeCheck.domain_id == domain_id, UptimeCheck.checked_at >= since)
                .order_by(UptimeCheck.checked_at.desc())
            )
            return [
                UptimeCheckRecord(
                    domain_id=c.domain_id,
                    checked_at=c.checked_at,
                    status=c.status,
                    http_status=c.http_status,
                    response_time_ms=c.response_time_ms,
                    error_message=c.error_message,
                )
                for c in result.scalars().all()
            ]

    async def update_uptime_summary(self, domain_id: UUID, summary: UptimeSummary) -> None:
        await self._update_domain(
            domain_id,
            last_uptime_status=summary.last_uptime_status.value,
            last_uptime_checked_at=summary.last_uptime_checked_at,
            last_response_time_ms=summary.last_response_time_ms,
            uptime_24h_percent=summary.uptime_24h_percent,
            uptime_7d_percent=summary.uptime_7d_percent,
        )

    # ─────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────

    async def update_registration(
        self,
        domain_id: UUID,
        expiry_date: date | None,
        registrar_name: str | None,
    ) -> None:
        values = {
            k: v
            for k, v in {"expiry_date": expiry_date, "registrar_name": registrar_name}.items()
            if v is not None
        }
        if values:
            await self._update_domain(domain_id, **values)

    # ─────────────────────────────────────────
    # Reporting
    # ─────────────────────────────────────────

    async def get_report(self, domain_id: UUID, page_limit: int = 50) -> DomainReport | None:
        async with self.session_factory() as session:
            domain = await session.get(Domain, domain_id)
            if domain is None:
                return None

            pages = (await session.execute(
                select(SitePage)
                .where(SitePage.domain_id == domain_id)
                .order_by(SitePage.last_scanned_at.desc())
                .limit(page_limit)
            )).scalars().all()

            suggestions = (await session.execute(
                select(Suggestion)
                .where(Suggestion.domain_id == domain_id)
                .order_by(_SEVERITY_ORDER, Suggestion.created_at)
            )).scalars().all()

        return DomainReport(
            domain_id=domain.id,
            domain_name=domain.domain_name,
            health_score=domain.health_score,
            health_summary=HealthSummary(
                total_pages_scanned=domain.total_pages_scanned,
                pages_missing_title=domain.pages_missing_title,
                pages_missing_meta=domain.pages_missing_meta,
                pages_missing_h1=domain.pages_missing_h1,
                pages_2xx=domain.pages_2xx,
                pages_4xx=domain.pages_4xx,
                pages_5xx=domain.pages_5xx,
            ),
            last_scan_at=domain.last_scan_at,
            last_uptime_status=domain.last_uptime_status,
            last_uptime_checked_at=domain.last_uptime_checked_at,
            uptime_24h_percent=domain.uptime_24h_percent,
            uptime_7d_percent=domain.uptime_7d_percent,
            registrar_name=domain.registrar_name,
            expiry_date=domain.expiry_date,
            pages=[
                StoredPage(
                    id=p.id,
                    domain_id=p.domain_id,
                    user_id=p.user_id,
                    url=p.url,
                    http_status=p.http_status,
                    title=p.title,
                    meta_description=p.meta_description,
                    canonical_url=p.canonical_url,
                    robots_directive=p.robots_directive,
                    h1=p.h1,
                    last_scanned_at=p.last_scanned_at,
                )
                for p in pages
            ],
            suggestions=[
                StoredSuggestion(
                    id=s.id,
                    domain_id=s.domain_id,
                    page_id=s.page_id,
                    user_id=s.user_id,
                    scope=s.scope,
                    type=s.suggestion_type,
                    title=s.title,
                    description=s.description,
                    severity=s.severity,
                    impact=s.impact,
                    effort=s.effort,
                    created_at=s.created_at,
                )
                for s in suggestions
            ],
        )

    # ─────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────

    async def _update_domain(self, domain_id: UUID, **values) -> None:
        try:
            async with self.session_factory() as session:
                await session.execute(update(Domain).where(Domain.id == domain_id).values(**values))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Domain update failed for {domain_id}: {e}") from e
