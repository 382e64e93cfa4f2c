"""
Transaction management utilities for database operations.

Provides a context manager for safe transaction handling with automatic
rollback on errors, a row-lock helper and retry logic for deadlocks.
"""

import time
import functools
from typing import Callable, Optional
from contextlib import contextmanager

from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, DBAPIError

from subshare.utils.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def transaction_scope(db: Session, auto_commit: bool = True):
    """
    Context manager for database transactions with automatic rollback.

    Usage:
        with transaction_scope(db):
            ledger.add_funds(user_id, amount, "Topup")
            # Commits on success, rolls back on error

    Args:
        db: SQLAlchemy session
        auto_commit: Whether to commit automatically (default: True)

    Yields:
        Session: Database session

    Raises:
        Exception: Re-raises any exception after rollback

    Note:
        Does NOT close the session - that's handled by the dependency injection system.
    """
    try:
        yield db
        if auto_commit:
            db.commit()
            logger.debug("Transaction committed successfully")
    except Exception as e:
        db.rollback()
        logger.warning(f"Transaction rolled back due to error: {e}")
        raise


def _find_session(args, kwargs) -> Optional[Session]:
    """Locate the session of a decorated function or service method."""
    db = kwargs.get('db')
    if db is not None:
        return db
    if args:
        first = args[0]
        if isinstance(first, Session):
            return first
        # Service methods: self.db
        candidate = getattr(first, 'db', None)
        if isinstance(candidate, Session):
            return candidate
    return None


def _is_lock_error(error: Exception) -> bool:
    message = str(error).lower()
    return 'deadlock' in message or 'lock timeout' in message or 'could not obtain lock' in message


def retry_on_deadlock(max_retries: int = 3, initial_backoff: float = 0.1):
    """
    Decorator to retry operations on database deadlock.

    Implements exponential backoff: wait = initial_backoff * (2 ** attempt).
    Only retries on deadlock or lock timeout errors. The wrapped callable must
    own its transaction, since the session is rolled back before each retry.

    Usage:
        class SubscriptionUnlockService:
            @retry_on_deadlock(max_retries=3)
            def unlock(self, subscription_id, buyer_id, hours):
                with transaction_scope(self.db):
                    ...

    Args:
        max_retries: Maximum number of attempts (default: 3)
        initial_backoff: Initial backoff time in seconds (default: 0.1)

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (OperationalError, DBAPIError) as e:
                    if not _is_lock_error(e):
                        raise

                    last_exception = e
                    db = _find_session(args, kwargs)
                    if db is not None:
                        db.rollback()

                    if attempt < max_retries - 1:
                        backoff_time = initial_backoff * (2 ** attempt)
                        logger.warning(
                            f"Deadlock detected in {func.__name__}, "
                            f"retrying in {backoff_time:.2f}s (attempt {attempt + 1}/{max_retries})"
                        )
                        time.sleep(backoff_time)
                    else:
                        logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}")

            raise last_exception

        return wrapper
    return decorator


def lock_row(db: Session, model_class, filter_condition):
    """
    Load a single row with SELECT ... FOR UPDATE.

    Returns None when nothing matches; the caller decides which error that is.
    The lock is held until the surrounding transaction ends. Attributes of an
    instance already in the session are refreshed from the locked read.
    """
    row = (
        db.query(model_class)
        .filter(filter_condition)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if row is not None:
        logger.debug(f"Locked {model_class.__name__} row {getattr(row, 'id', '?')}")
    return row
