"""
Subscription unlock orchestrator.

Turns "buyer wants N hours of subscription S" into one database transaction:
buyer debit, access grant, owner earning and platform commission either all
commit or all roll back.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.orm import Session

from subshare.database.models import SharedSubscription, TransactionType, User, UserRole, AccessGrant
from subshare.monitoring.prometheus_metrics import get_metrics
from subshare.services.access import AccessGrantManager, Clock, epoch_now, price_for
from subshare.services.commission import CommissionSplit, split, to_money
from subshare.services.ledger import LedgerService
from subshare.services.settings import SettingsService
from subshare.utils.config import get_config
from subshare.utils.exceptions import (
    AlreadyActiveError,
    InsufficientBalanceError,
    NotFoundError,
    NotVerifiedError,
    SelfPurchaseForbiddenError,
    SubShareError,
    SubscriptionInactiveError,
    UserNotFoundError,
    ValidationFailedError,
)
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row, retry_on_deadlock, transaction_scope

logger = get_logger(__name__)


@dataclass
class UnlockResult:
    grant: AccessGrant
    total_paid: Decimal
    hours: int
    commission: CommissionSplit
    commission_paid: bool


class SubscriptionUnlockService:
    """
    Executes purchases of timed access.

    Row locks are always taken in the same order (subscription, then user rows
    by ascending id) so concurrent unlocks queue instead of deadlocking.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or epoch_now
        self.config = get_config()
        self.ledger = LedgerService(db)
        self.access = AccessGrantManager(db, clock=self.clock)
        self.settings = SettingsService(db)
        self.metrics = get_metrics()

    def validate_hours(self, hours: int) -> int:
        minimum = self.config.min_access_hours
        maximum = self.config.max_access_hours
        if not isinstance(hours, int) or isinstance(hours, bool) or not minimum <= hours <= maximum:
            raise ValidationFailedError(
                f"Hours must be between {minimum} and {maximum}",
                {"hours": hours, "min": minimum, "max": maximum},
            )
        return hours

    def find_admin(self) -> Optional[User]:
        """The platform admin receiving commissions: the oldest admin account."""
        return (
            self.db.query(User)
            .filter(User.role == UserRole.ADMIN)
            .order_by(User.id.asc())
            .first()
        )

    def _lock_participants(self, user_ids) -> Dict[int, User]:
        locked = {}
        for user_id in sorted(set(user_ids)):
            user = lock_row(self.db, User, User.id == user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            locked[user_id] = user
        return locked

    def _check_subscription(self, subscription: Optional[SharedSubscription], subscription_id: int,
                            buyer_id: int) -> SharedSubscription:
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)

        if not subscription.is_active or subscription.is_expired(self.clock()):
            raise SubscriptionInactiveError(
                "Subscription is not active",
                {"subscription_id": subscription_id},
            )

        if not subscription.is_verified:
            raise NotVerifiedError(
                "Subscription is not verified yet",
                {"subscription_id": subscription_id},
            )

        if subscription.owner_id == buyer_id:
            raise SelfPurchaseForbiddenError(
                "You cannot unlock your own subscription",
                {"subscription_id": subscription_id},
            )

        return subscription

    @retry_on_deadlock(max_retries=3, initial_backoff=0.1)
    def unlock(self, subscription_id: int, buyer_id: int, hours: int) -> UnlockResult:
        """
        Purchase `hours` of access to a subscription.

        Preconditions are checked in order: subscription exists, is active, is
        verified, is not the buyer's own, the buyer has no live grant, and the
        buyer can afford it. Each failure raises its own error and leaves the
        database untouched.

        Raises:
            ValidationFailedError, NotFoundError, SubscriptionInactiveError,
            NotVerifiedError, SelfPurchaseForbiddenError, AlreadyActiveError,
            InsufficientBalanceError
        """
        try:
            result = self._unlock(subscription_id, buyer_id, hours)
        except SubShareError as e:
            self.metrics.track_unlock(e.code.lower())
            logger.info(f"Unlock rejected: subscription={subscription_id} buyer={buyer_id} reason={e.code}")
            raise

        self.metrics.track_unlock("success")
        return result

    def _unlock(self, subscription_id: int, buyer_id: int, hours: int) -> UnlockResult:
        self.validate_hours(hours)

        with transaction_scope(self.db):
            subscription = self._check_subscription(
                lock_row(self.db, SharedSubscription, SharedSubscription.id == subscription_id),
                subscription_id,
                buyer_id,
            )
            owner_id = subscription.owner_id

            admin = self.find_admin()
            participants = [buyer_id, owner_id] + ([admin.id] if admin else [])
            buyer = self._lock_participants(participants)[buyer_id]

            self.access.expire_stale_grants(buyer_id, subscription_id)
            if self.access.has_active_access(buyer_id, subscription_id):
                raise AlreadyActiveError(
                    "You already have active access to this subscription",
                    {"subscription_id": subscription_id},
                )

            total = price_for(hours, subscription.price_per_hour)
            if to_money(buyer.balance) < total:
                raise InsufficientBalanceError(buyer_id, buyer.balance, total)

            parts = split(total, self.settings.get_commission_percentage())

            debit = self.ledger.deduct_funds(
                buyer_id,
                parts.total,
                TransactionType.PURCHASE,
                notes=f"Purchase {hours}h access to subscription #{subscription_id}",
            )

            grant = self.access.create_access(
                buyer_id,
                subscription_id,
                hours,
                parts.total,
                parts.commission_amount,
                commission_settled=admin is not None,
            )
            debit.access_grant_id = grant.id

            self.ledger.process_earning(
                owner_id,
                parts.owner_amount,
                grant.id,
                notes=f"Earning from subscription #{subscription_id} ({hours}h)",
            )

            if admin is not None:
                self.ledger.process_commission(admin.id, parts.commission_amount, parts.percentage, grant.id)
            else:
                logger.warning(
                    f"No admin account exists; commission {parts.commission_amount} for grant "
                    f"{grant.id} recorded on the grant but not paid out"
                )

            self.db.flush()

        logger.info(
            f"Unlock completed: grant={grant.id} buyer={buyer_id} subscription={subscription_id} "
            f"hours={hours} total={parts.total} owner={parts.owner_amount} commission={parts.commission_amount}"
        )

        return UnlockResult(
            grant=grant,
            total_paid=parts.total,
            hours=hours,
            commission=parts,
            commission_paid=admin is not None,
        )
