"""Tests for the PostgreSQL statements and column types behind SQLAlchemyRepository."""

import re
import uuid
from datetime import datetime, timezone

from sqlalchemy import Text
from sqlalchemy.dialects import postgresql

from seo_health.engines.base import PageRecord
from seo_health.models.models import SitePage
from seo_health.storage.sql import page_upsert_statement


def compiled_upsert(**overrides) -> str:
    values = {
        "domain_id": uuid.uuid4(),
        "url": "https://example.com/",
        "http_status": 200,
        "title": "Example home page",
        "last_scanned_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    stmt = page_upsert_statement(PageRecord(**values))
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestPageUpsert:

    def test_conflicts_on_domain_and_url(self):
        sql = compiled_upsert()
        assert "ON CONFLICT ON CONSTRAINT uq_site_pages_domain_url DO UPDATE SET" in sql
        assert "RETURNING site_pages.id" in sql

    def test_rescan_bumps_updated_at(self):
        set_clause = compiled_upsert().split("DO UPDATE SET", 1)[1]
        assert re.search(r"\bupdated_at = now\(\)", set_clause)

    def test_updates_signals_but_not_natural_key(self):
        set_clause = compiled_upsert().split("DO UPDATE SET", 1)[1]
        for column in ("title", "http_status", "robots_directive", "last_scanned_at"):
            assert re.search(rf"\b{column} = excluded\.{column}\b", set_clause)
        assert not re.search(r"\bdomain_id = excluded\.domain_id\b", set_clause)
        assert not re.search(r"\burl = excluded\.url\b", set_clause)


class TestSitePageColumns:

    def test_signal_columns_are_unbounded_text(self):
        for column in ("title", "meta_description", "canonical_url", "robots_directive", "h1"):
            assert isinstance(SitePage.__table__.c[column].type, Text), column
