"""
Subscription platform model - the streaming services offers can be listed under.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base


class SubscriptionPlatform(Base):
    """A streaming service (Netflix, Spotify, ...) managed by admins."""

    __tablename__ = "subscription_platforms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    logo_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    subscriptions = relationship("SharedSubscription", back_populates="platform", lazy="dynamic")

    def __repr__(self):
        return f"<SubscriptionPlatform(id={self.id}, name='{self.name}', active={self.is_active})>"
