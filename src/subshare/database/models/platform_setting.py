"""
Platform setting model - admin-editable key/value configuration.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime

from .base import Base


class PlatformSetting(Base):

    __tablename__ = "platform_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<PlatformSetting(key='{self.key}', value='{self.value}')>"
