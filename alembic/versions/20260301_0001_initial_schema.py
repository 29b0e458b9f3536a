"""initial schema: domains, domain_status, site_pages, suggestions, uptime_checks

Revision ID: 0001
Revises:
Create Date: 2026-03-01 00:00:00+00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _domain_fk() -> sa.Column:
    return sa.Column(
        "domain_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("domains.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "domains",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("domain_name", sa.String(255), nullable=False),
        sa.Column("health_score", sa.Integer(), nullable=True),
        sa.Column("total_pages_scanned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_missing_title", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_missing_meta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_missing_h1", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_2xx", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_4xx", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_5xx", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_scan_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("uptime_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("uptime_check_interval_minutes", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("last_uptime_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_uptime_status", sa.String(10), nullable=True),
        sa.Column("last_response_time_ms", sa.Integer(), nullable=True),
        sa.Column("uptime_24h_percent", sa.Float(), nullable=True),
        sa.Column("uptime_7d_percent", sa.Float(), nullable=True),
        sa.Column("registrar_name", sa.String(255), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_domains_user_id", "domains", ["user_id"])
    op.create_index("ix_domains_uptime_enabled", "domains", ["uptime_enabled"])

    op.create_table(
        "domain_status",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _domain_fk(),
        sa.Column("final_url", sa.Text(), nullable=True),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("checked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("domain_id", name="uq_domain_status_domain_id"),
    )

    op.create_table(
        "site_pages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _domain_fk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("http_status", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("canonical_url", sa.Text(), nullable=True),
        sa.Column("robots_directive", sa.Text(), nullable=True),
        sa.Column("h1", sa.Text(), nullable=True),
        sa.Column("last_scanned_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("domain_id", "url", name="uq_site_pages_domain_url"),
    )
    op.create_index("ix_site_pages_domain_scanned", "site_pages", ["domain_id", "last_scanned_at"])

    op.create_table(
        "suggestions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _domain_fk(),
        sa.Column(
            "page_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("site_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("scope", sa.String(20), nullable=False, server_default="page"),
        sa.Column("suggestion_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(10), nullable=False),
        sa.Column("impact", sa.String(20), nullable=False),
        sa.Column("effort", sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_suggestions_domain_id", "suggestions", ["domain_id"])
    op.create_index("ix_suggestions_page_id", "suggestions", ["page_id"])
    op.create_index("ix_suggestions_domain_severity", "suggestions", ["domain_id", "severity"])

    op.create_table(
        "uptime_checks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _domain_fk(),
        sa.Column("checked_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_uptime_checks_domain_checked", "uptime_checks", ["domain_id", "checked_at"])


def downgrade() -> None:
    op.drop_table("uptime_checks")
    op.drop_table("suggestions")
    op.drop_table("site_pages")
    op.drop_table("domain_status")
    op.drop_table("domains")
