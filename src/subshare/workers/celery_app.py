"""
Celery application configuration for SubShare.

Background work is limited to periodic maintenance:
- expiring access grants whose end time has passed
- dependency health checks
"""

from datetime import timedelta

from celery import Celery
from celery.schedules import crontab
from celery.signals import after_setup_logger
from kombu import Queue

from subshare.utils.config import get_config
from subshare.utils.logger import setup_logging

config = get_config()

celery_app = Celery(
    "subshare",
    broker=config.redis_url,
    backend=config.celery_result_backend,
    include=["subshare.workers.tasks"]
)

celery_app.conf.update(
    task_routes={
        "subshare.workers.tasks.expire_due_grants": {"queue": "maintenance"},
        "subshare.workers.tasks.health_check": {"queue": "maintenance"},
    },

    task_queues=(
        Queue("maintenance", routing_key="maintenance"),
        Queue("default", routing_key="default"),
    ),
    task_default_queue="default",
    task_default_routing_key="default",

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    worker_prefetch_multiplier=1,

    result_expires=3600,

    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    timezone="UTC",
    enable_utc=True,

    beat_schedule={
        "expire-due-grants": {
            "task": "subshare.workers.tasks.expire_due_grants",
            "schedule": timedelta(minutes=config.expiry_sweep_interval_minutes),
            "options": {"queue": "maintenance"},
        },
        "health-check": {
            "task": "subshare.workers.tasks.health_check",
            "schedule": crontab(minute="*/5"),
            "options": {"queue": "maintenance"},
        },
    },

    worker_max_tasks_per_child=1000,
    worker_hijack_root_logger=False,
)


@after_setup_logger.connect
def configure_worker_logging(**kwargs):
    setup_logging()
