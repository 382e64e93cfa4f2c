"""
Health check endpoints for monitoring application status.

Provides:
- Basic health check
- Readiness check (database and Redis)
- Liveness check
"""

import time
from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter, status, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from subshare.database.connection import SessionLocal
from subshare.cache.redis_cache import get_cache
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns 200 if application is running.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": "subshare",
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(response: Response) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    The database is required; Redis only backs caching and rate limiting,
    so a Redis outage is reported as degraded without failing readiness.
    """
    checks = {
        "database": _check_database(),
        "redis": _check_redis(),
    }

    database_ok = checks["database"]["status"] == "healthy"
    if not database_ok:
        overall_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif checks["redis"]["status"] != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running, even if dependencies are down."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
    }


def _check_database() -> Dict[str, Any]:
    start_time = time.time()

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e)[:100],
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }
    finally:
        db.close()

    return {
        "status": "healthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }


def _check_redis() -> Dict[str, Any]:
    start_time = time.time()
    healthy = get_cache().ping()
    result = {
        "status": "healthy" if healthy else "unhealthy",
        "response_time_ms": round((time.time() - start_time) * 1000, 2),
    }
    if not healthy:
        result["error"] = "PING failed"
    return result
