"""
User model - marketplace account with a single-currency wallet.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from .base import Base, enum_type, money


class UserRole(str, enum.Enum):
    """User roles with different permission levels."""
    USER = "user"      # Can share and buy access
    ADMIN = "admin"    # Reviews topups, subscriptions and reports; receives commission


class User(Base):
    """
    Marketplace user.

    The balance column is only ever changed by the ledger service, which locks
    the row and records a transaction for every change.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile
    name = Column(String(255), nullable=False)
    role = Column(enum_type(UserRole, "user_role"), nullable=False, default=UserRole.USER, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Wallet
    balance = Column(money(), nullable=False, default=Decimal("0.00"))

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    shared_subscriptions = relationship(
        "SharedSubscription",
        back_populates="owner",
        foreign_keys="SharedSubscription.owner_id",
        lazy="dynamic",
    )
    transactions = relationship(
        "LedgerTransaction",
        back_populates="user",
        foreign_keys="LedgerTransaction.user_id",
        lazy="dynamic",
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
