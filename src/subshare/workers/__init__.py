"""
Celery workers module for background task processing.
"""

from .celery_app import celery_app
from .tasks import expire_due_grants, health_check, run_expiry_sweep

__all__ = [
    "celery_app",
    "expire_due_grants",
    "health_check",
    "run_expiry_sweep",
]
