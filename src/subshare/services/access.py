"""
Access grant manager.

Creates, checks, expires and cancels the time-bounded grants buyers hold on
shared subscriptions. Times are epoch seconds from an injectable clock.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.database.models import AccessGrant, AccessStatus, SharedSubscription
from subshare.monitoring.prometheus_metrics import get_metrics
from subshare.services.commission import MoneyLike, to_money
from subshare.utils.exceptions import (
    AccessDeniedError,
    AlreadyActiveError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600
ACTIVE_PAIR_INDEX = "uq_subscription_access_active_pair"

Clock = Callable[[], int]


def epoch_now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class EncryptedCredentials:
    """Stored credential pair, still encrypted, plus display context."""
    subscription_id: int
    platform_name: str
    username: str
    password: str
    access_expires_at: int


def _is_active_pair_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return ACTIVE_PAIR_INDEX in message or "subscription_access.buyer_id" in message


class AccessGrantManager:
    """Grant lifecycle for one database session. Flushes, never commits."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or epoch_now
        self.metrics = get_metrics()

    def _live_grant_query(self, user_id: int, subscription_id: int):
        return self.db.query(AccessGrant).filter(
            AccessGrant.buyer_id == user_id,
            AccessGrant.subscription_id == subscription_id,
            AccessGrant.status == AccessStatus.ACTIVE,
            AccessGrant.end_time >= self.clock(),
        )

    def get_active_access(self, user_id: int, subscription_id: int) -> Optional[AccessGrant]:
        return self._live_grant_query(user_id, subscription_id).first()

    def has_active_access(self, user_id: int, subscription_id: int) -> bool:
        """True iff an active grant exists whose end time has not passed."""
        return self.get_active_access(user_id, subscription_id) is not None

    def create_access(
        self,
        user_id: int,
        subscription_id: int,
        hours: int,
        price_paid: MoneyLike,
        commission_amount: MoneyLike,
        commission_settled: bool = True,
    ) -> AccessGrant:
        """
        Open a new active grant and bump the subscription's grant counter.

        Raises:
            NotFoundError: subscription does not exist
            AlreadyActiveError: an active grant already exists for the pair
        """
        if not isinstance(hours, int) or isinstance(hours, bool) or hours <= 0:
            raise ValidationFailedError("Hours must be a positive integer", {"hours": hours})

        subscription = lock_row(self.db, SharedSubscription, SharedSubscription.id == subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)

        start_time = self.clock()
        grant = AccessGrant(
            subscription_id=subscription_id,
            buyer_id=user_id,
            price_paid=to_money(price_paid),
            commission_amount=to_money(commission_amount),
            commission_settled=commission_settled,
            status=AccessStatus.ACTIVE,
            start_time=start_time,
            end_time=start_time + hours * SECONDS_PER_HOUR,
        )
        self.db.add(grant)
        subscription.total_grants = (subscription.total_grants or 0) + 1

        try:
            self.db.flush()
        except IntegrityError as e:
            if _is_active_pair_violation(e):
                raise AlreadyActiveError(
                    "You already have active access to this subscription",
                    {"subscription_id": subscription_id},
                )
            raise

        logger.info(
            f"Access grant {grant.id} created: buyer={user_id} subscription={subscription_id} "
            f"hours={hours} ends_at={grant.end_time}"
        )
        return grant

    def get_credentials(self, user_id: int, subscription_id: int) -> EncryptedCredentials:
        """
        Return the encrypted credential pair for a buyer with live access.

        Raises:
            AccessDeniedError: no active, unexpired grant for the pair
        """
        grant = self.get_active_access(user_id, subscription_id)
        if grant is None:
            raise AccessDeniedError(
                "Access denied. Please unlock this subscription first.",
                {"subscription_id": subscription_id},
            )

        subscription = grant.subscription
        return EncryptedCredentials(
            subscription_id=subscription.id,
            platform_name=subscription.platform.name if subscription.platform else "",
            username=subscription.credentials_username,
            password=subscription.credentials_password,
            access_expires_at=grant.end_time,
        )

    def expire_due_grants(self) -> int:
        """Move every active grant whose end time has passed to expired."""
        now = self.clock()
        count = (
            self.db.query(AccessGrant)
            .filter(AccessGrant.status == AccessStatus.ACTIVE, AccessGrant.end_time < now)
            .update({AccessGrant.status: AccessStatus.EXPIRED}, synchronize_session="fetch")
        )
        self.metrics.track_grants_expired(count)
        if count:
            logger.info(f"Expired {count} access grant(s)")
        return count

    def expire_stale_grants(self, user_id: int, subscription_id: int) -> int:
        """Expire lapsed active grants for one buyer/subscription pair."""
        count = (
            self.db.query(AccessGrant)
            .filter(
                AccessGrant.buyer_id == user_id,
                AccessGrant.subscription_id == subscription_id,
                AccessGrant.status == AccessStatus.ACTIVE,
                AccessGrant.end_time < self.clock(),
            )
            .update({AccessGrant.status: AccessStatus.EXPIRED}, synchronize_session="fetch")
        )
        self.metrics.track_grants_expired(count)
        return count

    def cancel_access(self, grant_id: int, requesting_user_id: int) -> AccessGrant:
        """
        Cancel an active grant owned by the requester. No refund is issued.

        Raises:
            NotFoundError: grant missing or held by someone else
            InvalidStateError: grant is not active
        """
        grant = lock_row(self.db, AccessGrant, AccessGrant.id == grant_id)
        if grant is None or grant.buyer_id != requesting_user_id:
            raise NotFoundError("Access grant", grant_id)

        if grant.status != AccessStatus.ACTIVE:
            raise InvalidStateError(
                f"Access grant is already {grant.status.value}",
                {"grant_id": grant_id, "status": grant.status.value},
            )

        grant.status = AccessStatus.CANCELLED
        self.db.flush()

        logger.info(f"Access grant {grant_id} cancelled by user {requesting_user_id}")
        return grant

    def list_user_grants(self, user_id: int, status: Optional[AccessStatus] = None) -> List[AccessGrant]:
        predicates = [AccessGrant.buyer_id == user_id]
        if status is not None:
            predicates.append(AccessGrant.status == status)
        return (
            self.db.query(AccessGrant)
            .filter(*predicates)
            .order_by(AccessGrant.created_at.desc(), AccessGrant.id.desc())
            .all()
        )


def price_for(hours: int, price_per_hour: MoneyLike) -> Decimal:
    """Total price for a number of hours at an hourly rate."""
    return to_money(to_money(price_per_hour) * hours)
