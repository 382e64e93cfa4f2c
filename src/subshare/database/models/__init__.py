"""
SQLAlchemy database models for SubShare.

Models:
- User: Marketplace account holding the wallet balance
- SubscriptionPlatform: Streaming services offers are listed under
- PlatformSetting: Admin-editable key/value settings
- SharedSubscription: Credential-sharing offer rented by the hour
- AccessGrant: Time-bounded access purchased by a buyer
- LedgerTransaction: Append-only balance change record
- TopupRequest: Wallet funding claim awaiting admin review
- Report: Complaint about a shared subscription
"""

from .base import Base
from .user import User, UserRole
from .platform import SubscriptionPlatform
from .platform_setting import PlatformSetting
from .shared_subscription import SharedSubscription
from .access_grant import AccessGrant, AccessStatus
from .transaction import LedgerTransaction, TransactionType, TransactionStatus
from .topup_request import TopupRequest, TopupStatus
from .report import Report, ReportStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "SubscriptionPlatform",
    "PlatformSetting",
    "SharedSubscription",
    "AccessGrant",
    "AccessStatus",
    "LedgerTransaction",
    "TransactionType",
    "TransactionStatus",
    "TopupRequest",
    "TopupStatus",
    "Report",
    "ReportStatus",
]
