"""
Order Timing - Celery application

Uses Redis as both broker and result backend.
Only runs the periodic retention purge (celery beat); the queue itself is
never mutated from a worker.
"""
from celery import Celery
from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "order_timing",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.retention_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "purge-expired-timings": {
            "task": "purge_expired_timings",
            "schedule": float(settings.RETENTION_PURGE_INTERVAL_SECONDS),
        },
    },
)
