"""
Storage contract for the scan pipeline, uptime sampler and registration lookup.

Every write method is its own unit of work: it either commits fully or
raises StorageError with nothing applied. Callers decide whether a failure
is fatal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from uuid import UUID

from seo_health.engines.base import (
    DomainRecord,
    DomainReport,
    HealthSummary,
    PageRecord,
    SuggestionRecord,
    UptimeCheckRecord,
    UptimeDomain,
    UptimeSummary,
)


class HealthRepository(ABC):

    # ── Domains ───────────────────────────────

    @abstractmethod
    async def get_domain(self, domain_id: UUID) -> DomainRecord | None:
        ...

    @abstractmethod
    async def get_start_url(self, domain_id: UUID) -> str | None:
        """The resolved final URL recorded for the domain, if any."""

    # ── Scan results ──────────────────────────

    @abstractmethod
    async def upsert_page(self, page: PageRecord) -> UUID:
        """Insert or update the row keyed by (domain_id, url); returns its id."""

    @abstractmethod
    async def replace_suggestions(self, domain_id: UUID, suggestions: list[SuggestionRecord]) -> int:
        """
        Delete every suggestion of the domain and insert the new set in one
        transaction. Readers see either the old set or the new one.
        """

    @abstractmethod
    async def update_scan_summary(
        self,
        domain_id: UUID,
        summary: HealthSummary,
        health_score: int,
        scanned_at: datetime,
    ) -> None:
        ...

    # ── Uptime ────────────────────────────────

    @abstractmethod
    async def list_uptime_domains(self) -> list[UptimeDomain]:
        """Domains with uptime monitoring enabled."""

    @abstractmethod
    async def add_uptime_check(self, check: UptimeCheckRecord) -> None:
        ...

    @abstractmethod
    async def list_uptime_checks(self, domain_id: UUID, since: datetime) -> list[UptimeCheckRecord]:
        """Checks with checked_at >= since, newest first."""

    @abstractmethod
    async def update_uptime_summary(self, domain_id: UUID, summary: UptimeSummary) -> None:
        ...

    # ── Registration ──────────────────────────

    @abstractmethod
    async def update_registration(
        self,
        domain_id: UUID,
        expiry_date: date | None,
        registrar_name: str | None,
    ) -> None:
        """Write only the values that are not None."""

    # ── Reporting ─────────────────────────────

    @abstractmethod
    async def get_report(self, domain_id: UUID, page_limit: int = 50) -> DomainReport | None:
        ...
