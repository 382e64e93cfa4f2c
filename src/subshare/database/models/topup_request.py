"""
Topup request model - a user's claim of external payment awaiting admin review.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, enum_type, money


class TopupStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TopupRequest(Base):

    __tablename__ = "topup_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(money(), nullable=False)
    # External payment reference; one request per payment
    transaction_id = Column(String(255), unique=True, nullable=False)
    screenshot_url = Column(String(500), nullable=True)

    status = Column(enum_type(TopupStatus, "topup_status"), nullable=False, default=TopupStatus.PENDING, index=True)
    reviewed_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    review_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<TopupRequest(id={self.id}, user_id={self.user_id}, status={self.status.value})>"
