from celery import Celery
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "competitor_scan",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.workers.scan_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=int(settings.scan_task_time_limit_seconds),
    task_soft_time_limit=max(60, int(settings.scan_task_time_limit_seconds) - 60),
    # At-least-once: unacked messages from a dead worker are redelivered.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=int(settings.scan_worker_concurrency),
    # Unacked messages are redelivered only after any live run would have hit its hard limit.
    broker_transport_options={
        "visibility_timeout": max(int(settings.scan_task_time_limit_seconds), int(settings.scan_job_lock_seconds)) + 60,
    },
    result_expires=3600,
    task_routes={
        "app.workers.scan_tasks.run_competitor_scan": {"queue": "scans"},
    },
)
