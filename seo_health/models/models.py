"""
Database Models - schema for domain health scans and uptime sampling.

Design decisions:
- UUID primary keys (no sequential int exposure)
- Domain carries its latest scan, uptime and registration summary so the
  dashboard reads one row
- One site_pages row per normalized URL per domain; rescans update in place
- Suggestions are replaced wholesale per domain on every scan
- uptime_checks is append-only
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seo_health.core.database import Base


# ─────────────────────────────────────────────
# Mixins
# ─────────────────────────────────────────────

class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UUIDPrimaryKeyMixin:
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)


# ─────────────────────────────────────────────
# Domains
# ─────────────────────────────────────────────

class Domain(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A monitored domain and its latest derived summaries."""
    __tablename__ = "domains"

    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    domain_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Latest scan summary, overwritten wholesale per scan
    health_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_pages_scanned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_missing_title: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_missing_meta: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_missing_h1: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_2xx: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_4xx: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_5xx: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_scan_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Uptime
    uptime_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    uptime_check_interval_minutes: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    last_uptime_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_uptime_status: Mapped[str | None] = mapped_column(String(10), nullable=True)  # up | down
    last_response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uptime_24h_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    uptime_7d_percent: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Registration (RDAP)
    registrar_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped["DomainStatus | None"] = relationship("DomainStatus", back_populates="domain", uselist=False)
    pages: Mapped[list["SitePage"]] = relationship("SitePage", back_populates="domain")
    suggestions: Mapped[list["Suggestion"]] = relationship("Suggestion", back_populates="domain")

    __table_args__ = (
        Index("ix_domains_user_id", "user_id"),
        Index("ix_domains_uptime_enabled", "uptime_enabled"),
    )


class DomainStatus(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Reachability record written by the domain checker; read-only here."""
    __tablename__ = "domain_status"

    domain_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("domains.id", ondelete="CASCADE"), nullable=False)
    final_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    domain: Mapped[Domain] = relationship("Domain", back_populates="status")

    __table_args__ = (
        UniqueConstraint("domain_id", name="uq_domain_status_domain_id"),
    )


# ─────────────────────────────────────────────
# Pages
# ─────────────────────────────────────────────

class SitePage(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Latest signals for one normalized URL of a domain."""
    __tablename__ = "site_pages"

    domain_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("domains.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    http_status: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    canonical_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    robots_directive: Mapped[str | None] = mapped_column(Text, nullable=True)
    h1: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_scanned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    domain: Mapped[Domain] = relationship("Domain", back_populates="pages")
    suggestions: Mapped[list["Suggestion"]] = relationship("Suggestion", back_populates="page")

    __table_args__ = (
        UniqueConstraint("domain_id", "url", name="uq_site_pages_domain_url"),
        Index("ix_site_pages_domain_scanned", "domain_id", "last_scanned_at"),
    )


# ─────────────────────────────────────────────
# Suggestions
# ─────────────────────────────────────────────

class Suggestion(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A prioritized, actionable fix for one page."""
    __tablename__ = "suggestions"

    domain_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("domains.id", ondelete="CASCADE"), nullable=False)
    page_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("site_pages.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    scope: Mapped[str] = mapped_column(String(20), default="page", nullable=False)
    suggestion_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False)    # high | medium | low
    impact: Mapped[str] = mapped_column(String(20), nullable=False)
    effort: Mapped[str] = mapped_column(String(20), nullable=False)

    domain: Mapped[Domain] = relationship("Domain", back_populates="suggestions")
    page: Mapped[SitePage] = relationship("SitePage", back_populates="suggestions")

    __table_args__ = (
        Index("ix_suggestions_domain_id", "domain_id"),
        Index("ix_suggestions_page_id", "page_id"),
        Index("ix_suggestions_domain_severity", "domain_id", "severity"),
    )


# ─────────────────────────────────────────────
# Uptime
# ─────────────────────────────────────────────

class UptimeCheck(Base, UUIDPrimaryKeyMixin):
    """One availability sample. Never updated."""
    __tablename__ = "uptime_checks"

    domain_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("domains.id", ondelete="CASCADE"), nullable=False)
    checked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)   # up | down
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_uptime_checks_domain_checked", "domain_id", "checked_at"),
    )
