"""
Structured logging using structlog.

Every event carries the service name and the process role (api, worker, beat).
Scan and task identifiers are bound through contextvars so that page fetch,
rule and storage events can be grouped per scan without passing ids around.
JSON in production, colored console in development.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from seo_health.core.config import get_settings

_LEVEL_TO_SEVERITY = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
}

# Crawls and probes issue one request per page/domain; these loggers would log each one.
_CHATTY_LOGGERS = ("httpx", "httpcore", "hpack")
_PRODUCTION_QUIET_LOGGERS = ("asyncio", "sqlalchemy.engine", "celery.app.trace")


def add_severity(logger: Any, method: str, event_dict: EventDict) -> EventDict:
    """Map structlog levels to GCP/Datadog severity levels."""
    event_dict["severity"] = _LEVEL_TO_SEVERITY.get(method, "INFO")
    return event_dict


def _service_context(role: str) -> Processor:
    service = get_settings().APP_NAME

    def add_service(logger: Any, method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("role", role)
        return event_dict

    return add_service


def configure_logging(role: str = "api") -> None:
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _service_context(role),
        add_severity,
    ]

    if settings.LOG_FORMAT == "json":
        renderer: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if settings.ENV == "production":
        for name in _PRODUCTION_QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


# ─────────────────────────────────────────────
# Per-scan / per-task context
# ─────────────────────────────────────────────

def bind_scan_context(domain_id: object, **extra: Any) -> None:
    """Attach the domain being scanned to every event logged in this context."""
    structlog.contextvars.bind_contextvars(domain_id=str(domain_id), **extra)


def clear_scan_context() -> None:
    structlog.contextvars.clear_contextvars()
