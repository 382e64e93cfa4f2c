"""
Access grant model - a buyer's time-bounded right to one subscription's credentials.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, BigInteger, Boolean, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from .base import Base, enum_type, money


class AccessStatus(str, enum.Enum):
    """Grant lifecycle. Only active grants ever change status."""
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AccessGrant(Base):
    """
    One row per successful unlock.

    start_time and end_time are epoch seconds. At most one active grant may
    exist per (buyer, subscription); a partial unique index enforces it.
    """

    __tablename__ = "subscription_access"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(Integer, ForeignKey("shared_subscriptions.id"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    price_paid = Column(money(), nullable=False)
    commission_amount = Column(money(), nullable=False)
    # False when no admin existed to receive the commission at purchase time
    commission_settled = Column(Boolean, default=True, nullable=False)

    status = Column(enum_type(AccessStatus, "access_status"), nullable=False, default=AccessStatus.ACTIVE)
    start_time = Column(BigInteger, nullable=False)
    end_time = Column(BigInteger, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    # Relationships
    subscription = relationship("SharedSubscription", back_populates="grants")
    buyer = relationship("User", foreign_keys=[buyer_id])
    transactions = relationship("LedgerTransaction", back_populates="access_grant", lazy="dynamic")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_subscription_access_window"),
        Index(
            "uq_subscription_access_active_pair",
            "buyer_id",
            "subscription_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_subscription_access_status_end", "status", "end_time"),
    )

    @property
    def hours(self) -> int:
        return (self.end_time - self.start_time) // 3600

    def __repr__(self):
        return (
            f"<AccessGrant(id={self.id}, buyer_id={self.buyer_id}, "
            f"subscription_id={self.subscription_id}, status={self.status.value})>"
        )
