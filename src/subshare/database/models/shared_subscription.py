"""
Shared subscription model - a credential-sharing offer rented out by the hour.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, Text, Boolean, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import Base, money


class SharedSubscription(Base):
    """
    Offer created by an owner for one platform account.

    Credentials are stored encrypted. Offers are never hard-deleted once
    grants reference them; deactivation flips is_active instead.
    """

    __tablename__ = "shared_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform_id = Column(Integer, ForeignKey("subscription_platforms.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Encrypted credential pair
    credentials_username = Column(Text, nullable=False)
    credentials_password = Column(Text, nullable=False)

    price_per_hour = Column(money(), nullable=False)

    # Lifecycle
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_note = Column(Text, nullable=True)
    verified_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    total_grants = Column(Integer, default=0, nullable=False)

    # Epoch seconds; offer cannot be unlocked after this instant
    expires_at = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="shared_subscriptions", foreign_keys=[owner_id])
    platform = relationship("SubscriptionPlatform", back_populates="subscriptions")
    grants = relationship("AccessGrant", back_populates="subscription", lazy="dynamic")

    __table_args__ = (
        CheckConstraint("price_per_hour > 0", name="ck_shared_subscriptions_price_positive"),
        Index("ix_shared_subscriptions_listing", "is_active", "is_verified"),
    )

    def is_expired(self, now: int) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def __repr__(self):
        return (
            f"<SharedSubscription(id={self.id}, owner_id={self.owner_id}, "
            f"active={self.is_active}, verified={self.is_verified})>"
        )
