"""
Type contracts shared by the crawler, rule engine, aggregator and uptime sampler.

Design principles:
- Engines are stateless: all state comes from their arguments
- Signals, suggestions and summaries are plain pydantic models so they
  serialize unchanged across Celery task boundaries and API responses
- Storage records mirror the repository contract, not the ORM rows
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class Severity(str, Enum):
    HIGH = "high"           # Significant impact - fix soon
    MEDIUM = "medium"       # Moderate impact - fix this sprint
    LOW = "low"             # Minor - fix when convenient


class SuggestionType(str, Enum):
    MISSING_OR_SHORT_TITLE = "missing_or_short_title"
    TITLE_TOO_LONG = "title_too_long"
    MISSING_META_DESCRIPTION = "missing_meta_description"
    SHORT_META_DESCRIPTION = "short_meta_description"
    LONG_META_DESCRIPTION = "long_meta_description"
    CANONICAL_POINTS_ELSEWHERE = "canonical_points_elsewhere"
    INVALID_CANONICAL = "invalid_canonical"
    MISSING_H1 = "missing_h1"
    NOINDEX_SET = "noindex_set"
    PAGE_ERROR_STATUS = "page_error_status"


class Impact(str, Enum):
    VISIBILITY = "visibility"
    CLICK_THROUGH = "click_through"
    TECHNICAL = "technical"
    ESSENTIALS = "essentials"


class Effort(str, Enum):
    QUICK_WIN = "quick_win"
    MODERATE = "moderate"
    DEEP_CHANGE = "deep_change"


class FetchFailure(str, Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"       # DNS, connection refused, TLS, too many redirects
    NOT_HTML = "not_html"     # Response was not an HTML document


class UptimeStatus(str, Enum):
    UP = "up"
    DOWN = "down"


class RegistrationStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    NOT_FOUND = "not_found"
    ERROR = "error"


# ─────────────────────────────────────────────
# Crawl data types
# ─────────────────────────────────────────────

class FetchResult(BaseModel):
    """Outcome of one bounded GET."""
    url: str
    status_code: int | None = None
    body: str = ""
    content_type: str = ""
    failure: FetchFailure | None = None
    error_message: str | None = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.failure is None


class PageSignals(BaseModel):
    """On-page SEO signals for one visited URL."""
    url: str
    status_code: int
    title: str | None = None
    meta_description: str | None = None
    canonical: str | None = None
    robots: str | None = None
    h1: str | None = None
    links: list[str] = Field(default_factory=list)
    parsed: bool = True     # False when the document could not be parsed


class CrawledPage(BaseModel):
    """A visited page and, once stored, its row id."""
    signals: PageSignals
    page_id: UUID | None = None

    @property
    def url(self) -> str:
        return self.signals.url


class SuggestionDraft(BaseModel):
    """A suggestion produced by the rule engine, before it is tied to a page row."""
    model_config = ConfigDict(frozen=True)

    type: SuggestionType
    title: str
    description: str
    severity: Severity
    impact: Impact
    effort: Effort


# ─────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthSummary(_CamelModel):
    total_pages_scanned: int = 0
    pages_missing_title: int = 0
    pages_missing_meta: int = 0
    pages_missing_h1: int = 0
    pages_2xx: int = Field(default=0, alias="pages2xx")
    pages_4xx: int = Field(default=0, alias="pages4xx")
    pages_5xx: int = Field(default=0, alias="pages5xx")


class ScanResult(_CamelModel):
    domain_id: UUID
    pages_scanned: int
    suggestions_created: int
    health_score: int
    health_summary: HealthSummary
    urls_found: int = 0


class UptimeProbeResult(BaseModel):
    status: UptimeStatus
    http_status: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None


class UptimeTickResult(BaseModel):
    checked: int = 0
    skipped: int = 0
    total: int = 0


class RegistrationInfo(BaseModel):
    domain_name: str
    expiry_date: date | None = None
    registrar_name: str | None = None
    status: RegistrationStatus
    source: str = "rdap"
    message: str | None = None


# ─────────────────────────────────────────────
# Storage records
# ─────────────────────────────────────────────

class DomainRecord(BaseModel):
    id: UUID
    domain_name: str
    user_id: UUID | None = None


class PageRecord(BaseModel):
    """One site_pages row; (domain_id, url) is the natural key."""
    domain_id: UUID
    user_id: UUID | None = None
    url: str
    http_status: int
    title: str | None = None
    meta_description: str | None = None
    canonical_url: str | None = None
    robots_directive: str | None = None
    h1: str | None = None
    last_scanned_at: datetime

    @classmethod
    def from_signals(cls, domain: DomainRecord, signals: PageSignals, scanned_at: datetime) -> "PageRecord":
        return cls(
            domain_id=domain.id,
            user_id=domain.user_id,
            url=signals.url,
            http_status=signals.status_code,
            title=signals.title,
            meta_description=signals.meta_description,
            canonical_url=signals.canonical,
            robots_directive=signals.robots,
            h1=signals.h1,
            last_scanned_at=scanned_at,
        )


class SuggestionRecord(BaseModel):
    domain_id: UUID
    page_id: UUID
    user_id: UUID | None = None
    scope: str = "page"
    type: SuggestionType
    title: str
    description: str
    severity: Severity
    impact: Impact
    effort: Effort


class UptimeDomain(BaseModel):
    id: UUID
    domain_name: str
    check_interval_minutes: int = 10
    last_checked_at: datetime | None = None


class UptimeCheckRecord(BaseModel):
    domain_id: UUID
    checked_at: datetime
    status: UptimeStatus
    http_status: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None


class UptimeSummary(BaseModel):
    last_uptime_status: UptimeStatus
    last_uptime_checked_at: datetime
    last_response_time_ms: int | None = None
    uptime_24h_percent: float = 100.0
    uptime_7d_percent: float = 100.0


# ─────────────────────────────────────────────
# Report
# ─────────────────────────────────────────────

class StoredPage(PageRecord):
    id: UUID


class StoredSuggestion(SuggestionRecord):
    id: UUID
    created_at: datetime | None = None


class DomainReport(_CamelModel):
    """Read model behind the report endpoint: latest scan, uptime and registration state."""
    domain_id: UUID
    domain_name: str
    health_score: int | None = None
    health_summary: HealthSummary
    last_scan_at: datetime | None = None
    last_uptime_status: UptimeStatus | None = None
    last_uptime_checked_at: datetime | None = None
    uptime_24h_percent: float | None = Field(default=None, alias="uptime24hPercent")
    uptime_7d_percent: float | None = Field(default=None, alias="uptime7dPercent")
    registrar_name: str | None = None
    expiry_date: date | None = None
    pages: list[StoredPage] = Field(default_factory=list)
    suggestions: list[StoredSuggestion] = Field(default_factory=list)
