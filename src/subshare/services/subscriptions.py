"""
Shared subscription catalogue.

Owners list platform accounts for hourly rent. Credentials are encrypted
before they reach the database and decrypted only for buyers holding a live
access grant.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from subshare.database.models import SharedSubscription, SubscriptionPlatform
from subshare.security.encryption import CredentialEncryptor, get_encryptor
from subshare.services.access import AccessGrantManager, Clock
from subshare.services.commission import MoneyLike, to_money
from subshare.utils.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row, transaction_scope

logger = get_logger(__name__)


@dataclass
class SubscriptionFilter:
    """Listing criteria; predicates() yields the full WHERE clause at once."""
    platform_id: Optional[int] = None
    owner_id: Optional[int] = None
    verified_only: bool = False
    active_only: bool = False
    max_price: Optional[Decimal] = None

    def predicates(self) -> list:
        predicates = []
        if self.platform_id is not None:
            predicates.append(SharedSubscription.platform_id == self.platform_id)
        if self.owner_id is not None:
            predicates.append(SharedSubscription.owner_id == self.owner_id)
        if self.verified_only:
            predicates.append(SharedSubscription.is_verified.is_(True))
        if self.active_only:
            predicates.append(SharedSubscription.is_active.is_(True))
        if self.max_price is not None:
            predicates.append(SharedSubscription.price_per_hour <= self.max_price)
        return predicates


@dataclass(frozen=True)
class DecryptedCredentials:
    subscription_id: int
    platform_name: str
    username: str
    password: str
    access_expires_at: int


class SharedSubscriptionService:

    def __init__(
        self,
        db: Session,
        encryptor: Optional[CredentialEncryptor] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self._encryptor = encryptor
        self.access = AccessGrantManager(db, clock=clock)

    @property
    def encryptor(self) -> CredentialEncryptor:
        if self._encryptor is None:
            self._encryptor = get_encryptor()
        return self._encryptor

    @staticmethod
    def _price(value: MoneyLike) -> Decimal:
        price = to_money(value)
        if price <= 0:
            raise ValidationFailedError("Price must be positive", {"price_per_hour": str(price)})
        return price

    def create(
        self,
        owner_id: int,
        platform_id: int,
        username: str,
        password: str,
        price_per_hour: MoneyLike,
        expires_at: Optional[int] = None,
    ) -> SharedSubscription:
        """
        List a new offer. New offers start unverified and wait for admin review.

        Raises:
            NotFoundError: platform does not exist
            InvalidStateError: platform is deactivated
        """
        platform = self.db.query(SubscriptionPlatform).filter(SubscriptionPlatform.id == platform_id).first()
        if platform is None:
            raise NotFoundError("Platform", platform_id)
        if not platform.is_active:
            raise InvalidStateError("Platform is not active", {"platform_id": platform_id})

        subscription = SharedSubscription(
            platform_id=platform_id,
            owner_id=owner_id,
            credentials_username=self.encryptor.encrypt(username),
            credentials_password=self.encryptor.encrypt(password),
            price_per_hour=self._price(price_per_hour),
            expires_at=expires_at,
            is_active=True,
            is_verified=False,
            total_grants=0,
        )
        with transaction_scope(self.db):
            self.db.add(subscription)
            self.db.flush()

        logger.info(f"Shared subscription {subscription.id} created by user {owner_id} on platform {platform_id}")
        return subscription

    def get(self, subscription_id: int) -> SharedSubscription:
        subscription = (
            self.db.query(SharedSubscription)
            .options(joinedload(SharedSubscription.platform), joinedload(SharedSubscription.owner))
            .filter(SharedSubscription.id == subscription_id)
            .first()
        )
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)
        return subscription

    def list_subscriptions(self, criteria: SubscriptionFilter, limit: int = 100, offset: int = 0) -> List[SharedSubscription]:
        return (
            self.db.query(SharedSubscription)
            .options(joinedload(SharedSubscription.platform), joinedload(SharedSubscription.owner))
            .filter(*criteria.predicates())
            .order_by(SharedSubscription.created_at.desc(), SharedSubscription.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_owned(self, owner_id: int) -> List[SharedSubscription]:
        return self.list_subscriptions(SubscriptionFilter(owner_id=owner_id), limit=1000)

    def _lock_owned(self, subscription_id: int, user_id: int) -> SharedSubscription:
        subscription = lock_row(self.db, SharedSubscription, SharedSubscription.id == subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)
        if subscription.owner_id != user_id:
            raise ForbiddenError(
                "Only the owner can change this subscription",
                {"subscription_id": subscription_id},
            )
        return subscription

    def update(
        self,
        subscription_id: int,
        user_id: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        price_per_hour: Optional[MoneyLike] = None,
        is_active: Optional[bool] = None,
    ) -> SharedSubscription:
        """
        Owner edit. Credentials are replaced only as a pair.

        Raises:
            ValidationFailedError: nothing to change
        """
        change_credentials = username is not None and password is not None
        if not change_credentials and price_per_hour is None and is_active is None:
            raise ValidationFailedError("No data to update")

        with transaction_scope(self.db):
            subscription = self._lock_owned(subscription_id, user_id)
            if change_credentials:
                subscription.credentials_username = self.encryptor.encrypt(username)
                subscription.credentials_password = self.encryptor.encrypt(password)
            if price_per_hour is not None:
                subscription.price_per_hour = self._price(price_per_hour)
            if is_active is not None:
                subscription.is_active = is_active
            self.db.flush()

        logger.info(f"Shared subscription {subscription_id} updated by owner {user_id}")
        return subscription

    def deactivate(self, subscription_id: int, user_id: int) -> SharedSubscription:
        """Soft delete; grants keep pointing at the row."""
        with transaction_scope(self.db):
            subscription = self._lock_owned(subscription_id, user_id)
            subscription.is_active = False
            self.db.flush()

        logger.info(f"Shared subscription {subscription_id} deactivated by owner {user_id}")
        return subscription

    def get_credentials(self, subscription_id: int, user_id: int) -> DecryptedCredentials:
        """
        Decrypted credentials for a buyer with live access.

        Raises:
            NotFoundError: subscription does not exist
            AccessDeniedError: no live grant
        """
        self.get(subscription_id)
        stored = self.access.get_credentials(user_id, subscription_id)
        return DecryptedCredentials(
            subscription_id=stored.subscription_id,
            platform_name=stored.platform_name,
            username=self.encryptor.decrypt(stored.username),
            password=self.encryptor.decrypt(stored.password),
            access_expires_at=stored.access_expires_at,
        )
