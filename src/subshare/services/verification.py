"""
Admin verification of shared subscriptions. Only verified offers can be unlocked.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from subshare.database.models import SharedSubscription
from subshare.utils.exceptions import NotFoundError
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row, transaction_scope

logger = get_logger(__name__)


class VerificationService:

    def __init__(self, db: Session):
        self.db = db

    def verify_subscription(
        self,
        subscription_id: int,
        admin_id: int,
        is_verified: bool,
        note: Optional[str] = None,
    ) -> SharedSubscription:
        with transaction_scope(self.db):
            subscription = lock_row(self.db, SharedSubscription, SharedSubscription.id == subscription_id)
            if subscription is None:
                raise NotFoundError("Subscription", subscription_id)

            subscription.is_verified = is_verified
            subscription.verification_note = note
            subscription.verified_by_admin_id = admin_id
            self.db.flush()

        logger.info(
            f"Subscription {subscription_id} {'verified' if is_verified else 'unverified'} by admin {admin_id}"
        )
        return subscription

    def list_pending_verifications(self) -> List[SharedSubscription]:
        """Active offers still waiting for review, oldest first."""
        return (
            self.db.query(SharedSubscription)
            .filter(SharedSubscription.is_verified.is_(False), SharedSubscription.is_active.is_(True))
            .order_by(SharedSubscription.created_at.asc(), SharedSubscription.id.asc())
            .all()
        )
