"""Celery application configuration"""

from celery import Celery
from bites_api.config import settings

# Create Celery app
celery_app = Celery(
    "bites_api",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "bites_api.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_ignore_result=True,
    task_routes={
        "deliver_order_event": {"queue": "notifications"},
    },
)
