"""
Celery Application Configuration

Queue Architecture:
- crawl_queue:   Domain scans (long-running, one BFS crawl each)
- monitor_queue: Uptime ticks (short, I/O bound)
- default:       General tasks

Worker scaling:
- crawl_queue:    2-5 workers
- monitor_queue:  1-2 workers (probes already run concurrently in-process)
"""

import structlog
from celery import Celery
from celery.signals import after_setup_logger, beat_init, task_postrun, task_prerun, worker_ready
from kombu import Exchange, Queue

from seo_health.core.config import get_settings
from seo_health.core.logging import clear_scan_context, configure_logging

settings = get_settings()

# ─────────────────────────────────────────────
# Celery App
# ─────────────────────────────────────────────

celery_app = Celery(
    "seo_health",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "seo_health.workers.scan_tasks",
    ],
)

# ─────────────────────────────────────────────
# Queue Definitions
# ─────────────────────────────────────────────

default_exchange = Exchange("default", type="direct")
crawl_exchange = Exchange("crawl", type="direct")
monitor_exchange = Exchange("monitor", type="direct")

celery_app.conf.task_queues = (
    Queue("default", default_exchange, routing_key="default"),
    Queue("crawl_queue", crawl_exchange, routing_key="crawl"),
    Queue("monitor_queue", monitor_exchange, routing_key="monitor"),
)

celery_app.conf.task_default_queue = "default"
celery_app.conf.task_default_exchange = "default"
celery_app.conf.task_default_routing_key = "default"

# ─────────────────────────────────────────────
# Task Routing
# ─────────────────────────────────────────────

celery_app.conf.task_routes = {
    "seo_health.workers.scan_tasks.scan_domain_task": {"queue": "crawl_queue"},
    "seo_health.workers.scan_tasks.check_uptime_task": {"queue": "monitor_queue"},
}

# ─────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # A scan holds the domain lock for its whole run; ack only once it finishes
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,

    task_soft_time_limit=settings.CELERY_TASK_SOFT_TIME_LIMIT,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    task_max_retries=settings.CELERY_MAX_RETRIES,

    # Scan results are also persisted on the domain row; the backend copy is for polling only
    result_expires=86400,

    worker_send_task_events=True,
    task_send_sent_event=True,

    beat_schedule={
        "uptime-tick": {
            "task": "seo_health.workers.scan_tasks.check_uptime_task",
            "schedule": float(settings.UPTIME_SCHEDULE_SECONDS),
            # A tick still queued when the next one fires is redundant
            "options": {"queue": "monitor_queue", "expires": settings.UPTIME_SCHEDULE_SECONDS},
        },
    },
)


# ─────────────────────────────────────────────
# Signals
# ─────────────────────────────────────────────

@after_setup_logger.connect
def setup_worker_logging(logger, *args, **kwargs):
    configure_logging(role="worker")


@beat_init.connect
def setup_beat_logging(sender, **kwargs):
    configure_logging(role="beat")


@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    structlog.get_logger("celery.worker").info(
        "Celery worker ready",
        hostname=sender.hostname,
        queues=[q.name for q in celery_app.conf.task_queues],
    )


@task_prerun.connect
def bind_task_context(task_id=None, task=None, **kwargs):
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(task_id=task_id, task=task.name if task else None)


@task_postrun.connect
def clear_task_context(**kwargs):
    clear_scan_context()
