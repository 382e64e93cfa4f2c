"""
Celery tasks for background processing.

Tasks:
- expire_due_grants: mark lapsed access grants expired
- health_check: periodic dependency check
"""

from datetime import datetime
from typing import Optional
from celery import Task
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .celery_app import celery_app
from ..cache.redis_cache import get_cache
from ..database.connection import SessionLocal
from ..monitoring.prometheus_metrics import get_metrics
from ..services.access import AccessGrantManager, Clock
from ..utils.logger import get_logger
from ..utils.transaction import transaction_scope

logger = get_logger(__name__)


class DatabaseTask(Task):
    """
    Base task class that provides database session management.

    Automatically creates and closes database sessions for tasks.
    """
    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task completion."""
        if self._db is not None:
            self._db.close()
            self._db = None


def run_expiry_sweep(db: Session, clock: Optional[Clock] = None) -> int:
    """Expire every lapsed grant in one committed transaction; returns the count."""
    with transaction_scope(db):
        return AccessGrantManager(db, clock=clock).expire_due_grants()


@celery_app.task(
    bind=True,
    base=DatabaseTask,
    name="subshare.workers.tasks.expire_due_grants",
    max_retries=3,
    default_retry_delay=60,
)
def expire_due_grants(self) -> dict:
    """
    Periodic sweep moving active grants past their end time to expired.

    Reads already treat such grants as inactive; the sweep keeps stored
    statuses in line so listings and the active-pair index stay accurate.
    """
    metrics = get_metrics()

    try:
        expired = run_expiry_sweep(self.db)
    except SQLAlchemyError as exc:
        metrics.track_celery_task("expire_due_grants", "failure")
        logger.error(f"Grant expiry sweep failed: {exc}")
        raise self.retry(exc=exc)

    metrics.track_celery_task("expire_due_grants", "success")
    return {
        "expired_count": expired,
        "timestamp": datetime.utcnow().isoformat(),
    }


@celery_app.task(
    bind=True,
    name="subshare.workers.tasks.health_check",
)
def health_check(self) -> dict:
    """
    Periodic health check task.

    Returns:
        dict: Health status of the database and Redis
    """
    status = {
        "timestamp": datetime.utcnow().isoformat(),
        "database": "unknown",
        "redis": "unknown",
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        status["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        status["database"] = f"unhealthy: {str(e)}"
    finally:
        db.close()

    status["redis"] = "healthy" if get_cache().ping() else "unhealthy: ping failed"

    logger.info(f"Health check: {status}")
    return status
