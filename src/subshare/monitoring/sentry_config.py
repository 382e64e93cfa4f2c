"""
Sentry integration for error tracking and performance monitoring.
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from subshare.utils.config import get_config
from subshare.utils.exceptions import SubShareError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)


def setup_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
    traces_sample_rate: Optional[float] = None,
) -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Args:
        dsn: Sentry DSN - from config if not provided
        environment: Deployment environment (production, staging, development)
        release: Release version (e.g., "subshare@1.0.0")
        traces_sample_rate: Share of transactions to trace (0.0-1.0)

    Returns:
        True if Sentry was initialized
    """
    config = get_config()
    dsn = dsn or config.sentry_dsn

    if not dsn:
        logger.warning("Sentry DSN not configured, skipping Sentry initialization")
        return False

    environment = environment or config.environment
    release = release or "subshare@unknown"
    if traces_sample_rate is None:
        traces_sample_rate = config.sentry_traces_sample_rate

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
            CeleryIntegration(monitor_beat_tasks=True),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        before_send=before_send_filter,
        attach_stacktrace=True,
        send_default_pii=False,  # Credentials and emails stay out of events
        max_breadcrumbs=50,
    )

    logger.info(
        f"Sentry initialized: environment={environment}, "
        f"release={release}, traces_sample_rate={traces_sample_rate}"
    )
    return True


def before_send_filter(event, hint):
    """
    Filter events before sending to Sentry.

    Business errors (insufficient balance, not found, ...) are answered with
    4xx responses and are not reported.
    """
    if "exc_info" in hint:
        exc_type, exc_value, tb = hint["exc_info"]

        if isinstance(exc_value, SubShareError) and exc_value.status_code < 500:
            return None

        if "429" in str(exc_value) or "Too Many Requests" in str(exc_value):
            return None

    return event
