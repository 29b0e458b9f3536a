"""Tests for logging configuration and scan context binding."""

import structlog

from seo_health.core.logging import add_severity, bind_scan_context, clear_scan_context, configure_logging


class TestLogging:

    def test_severity(self):
        assert add_severity(None, "warning", {})["severity"] == "WARNING"
        assert add_severity(None, "msg", {})["severity"] == "INFO"

    def test_role_and_service_added(self):
        configure_logging(role="worker")
        processors = structlog.get_config()["processors"]
        event = {"event": "x"}
        for processor in processors[:-1]:
            event = processor(None, "info", event)

        assert event["role"] == "worker"
        assert event["service"] == "seo-health"
        assert event["severity"] == "INFO"

    def test_scan_context(self):
        bind_scan_context("abc", attempt=1)
        assert structlog.contextvars.get_contextvars() == {"domain_id": "abc", "attempt": 1}

        clear_scan_context()
        assert structlog.contextvars.get_contextvars() == {}
