"""
Ledger transaction model - append-only record of every balance change.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import relationship

from .base import Base, enum_type, money


class TransactionType(str, enum.Enum):
    TOPUP = "topup"
    PURCHASE = "purchase"
    EARNING = "earning"
    REFUND = "refund"
    COMMISSION = "commission"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class LedgerTransaction(Base):
    """
    Signed ledger entry. Debits carry negative amounts.

    A completed unlock leaves three rows sharing one access_grant_id: the buyer
    debit, the owner earning and the admin commission.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(money(), nullable=False)
    type = Column(enum_type(TransactionType, "transaction_type"), nullable=False, index=True)
    status = Column(
        enum_type(TransactionStatus, "transaction_status"),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )

    reference_id = Column(String(255), nullable=True)
    commission_percentage = Column(Numeric(5, 2, asdecimal=True), nullable=True)
    commission_amount = Column(money(), nullable=True)
    access_grant_id = Column(Integer, ForeignKey("subscription_access.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    processed_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions", foreign_keys=[user_id])
    access_grant = relationship("AccessGrant", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return (
            f"<LedgerTransaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.type.value}, amount={self.amount})>"
        )
