"""Celery worker configuration.

This module sets up Celery for the periodic booking lifecycle sweeps.
Deployments running Celery beat should set ``RUN_SWEEPERS_IN_PROCESS=false``
so the API processes don't sweep as well.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "boat_cruise_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Africa/Lagos",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # Soft limit at 4 minutes

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Retry settings
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Abandon unpaid bookings every 15 minutes
        "abandon-stale-bookings": {
            "task": "app.tasks.abandon_stale_bookings",
            "schedule": crontab(minute="*/15"),
        },
        # Complete finished bookings hourly
        "complete-finished-bookings": {
            "task": "app.tasks.complete_finished_bookings",
            "schedule": crontab(minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
