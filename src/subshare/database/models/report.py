"""
Report model - a user's complaint about a shared subscription.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from .base import Base, enum_type


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Report(Base):

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("shared_subscriptions.id"), nullable=False, index=True)
    reason = Column(Text, nullable=False)

    status = Column(enum_type(ReportStatus, "report_status"), nullable=False, default=ReportStatus.PENDING, index=True)
    resolved_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    reporter = relationship("User", foreign_keys=[reporter_id])
    subscription = relationship("SharedSubscription")

    __table_args__ = (
        # One open report per reporter and subscription
        Index(
            "uq_reports_pending_pair",
            "reporter_id",
            "subscription_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self):
        return f"<Report(id={self.id}, subscription_id={self.subscription_id}, status={self.status.value})>"
