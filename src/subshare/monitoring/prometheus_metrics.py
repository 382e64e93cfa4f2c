"""
Prometheus metrics for monitoring application behaviour.

Metrics exported:
- subshare_requests_total: Total HTTP requests
- subshare_request_duration_seconds: Request duration histogram
- subshare_errors_total: Total errors by type
- subshare_unlocks_total: Unlock attempts by result
- subshare_ledger_entries_total: Ledger transactions by type
- subshare_grants_expired_total: Grants moved to expired by the sweep
- subshare_celery_tasks_total: Celery task executions
"""

import re
import time
from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, REGISTRY
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from subshare.utils.logger import get_logger

logger = get_logger(__name__)

_NUMERIC_SEGMENT = re.compile(r'/\d+')


class PrometheusMetrics:
    """
    Prometheus metrics collector for SubShare.

    Tracks:
    - HTTP request metrics (rate, duration, status codes)
    - Marketplace activity (unlocks, ledger entries, expirations)
    - Error rates and background task outcomes
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize Prometheus metrics.

        Args:
            registry: Prometheus registry (default process registry if not provided)
        """
        self.registry = registry or REGISTRY

        self.requests_total = Counter(
            "subshare_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "subshare_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "subshare_errors_total",
            "Total errors",
            ["error_type", "endpoint"],
            registry=self.registry,
        )

        self.unlocks_total = Counter(
            "subshare_unlocks_total",
            "Subscription unlock attempts",
            ["result"],
            registry=self.registry,
        )

        self.ledger_entries_total = Counter(
            "subshare_ledger_entries_total",
            "Ledger transactions written",
            ["type"],
            registry=self.registry,
        )

        self.grants_expired_total = Counter(
            "subshare_grants_expired_total",
            "Access grants expired by the sweep",
            registry=self.registry,
        )

        self.celery_tasks_total = Counter(
            "subshare_celery_tasks_total",
            "Total Celery tasks",
            ["task_name", "status"],
            registry=self.registry,
        )

        logger.info("Prometheus metrics initialized")

    def track_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """
        Track HTTP request metrics.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Normalized request path
            status_code: HTTP status code
            duration: Request duration in seconds
        """
        self.requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_error(self, error_type: str, endpoint: str):
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def track_unlock(self, result: str):
        """Count an unlock outcome ("success" or the error code)."""
        self.unlocks_total.labels(result=result).inc()

    def track_ledger_entry(self, transaction_type: str):
        self.ledger_entries_total.labels(type=transaction_type).inc()

    def track_grants_expired(self, count: int):
        if count:
            self.grants_expired_total.inc(count)

    def track_celery_task(self, task_name: str, status: str):
        """
        Track Celery task execution.

        Args:
            task_name: Name of Celery task
            status: Task status (success, failed, retry)
        """
        self.celery_tasks_total.labels(task_name=task_name, status=status).inc()


_metrics: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance.

    Returns:
        PrometheusMetrics instance
    """
    global _metrics
    if _metrics is None:
        _metrics = PrometheusMetrics()
    return _metrics


def normalize_endpoint(path: str) -> str:
    """Replace numeric ids with a placeholder to keep label cardinality low."""
    return _NUMERIC_SEGMENT.sub('/{id}', path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic request metrics collection.
    """

    def __init__(self, app):
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        endpoint = normalize_endpoint(request.url.path)

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            self.metrics.track_error(type(e).__name__, endpoint)
            raise
        finally:
            self.metrics.track_request(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
                duration=time.time() - start_time,
            )

        return response
