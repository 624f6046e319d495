"""
tasks/celery_app.py
Celery application instance, shared across all task modules.

Workers are started with:
    celery -A tasks.celery_app worker -Q notifications --loglevel=info --concurrency=4
"""

from celery import Celery

from config.settings import settings

celery_app = Celery(
    "prayer_portal",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "tasks.notification_tasks",
    ],
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # At-most-once: ack on receipt, never redeliver or retry a notification
    task_acks_late=False,
    task_reject_on_worker_lost=False,

    # Publishing must fail fast when the broker is down; the caller drops the event
    task_publish_retry=False,
    broker_connection_timeout=2,

    # Notification results are never read
    task_ignore_result=True,
    result_expires=3600,

    # Routing
    task_routes={
        "tasks.notification_tasks.*": {"queue": "notifications"},
    },

    worker_prefetch_multiplier=4,
)
