"""
Pydantic schemas for API responses shared across route modules.

Request bodies live next to the route that accepts them.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel

from subshare.database.models import (
    AccessStatus,
    ReportStatus,
    SharedSubscription,
    TopupStatus,
    TransactionStatus,
    TransactionType,
    UserRole,
)


# User schemas
class UserResponse(BaseModel):
    """Public profile of a user, including wallet balance."""
    id: int
    email: str
    name: str
    role: UserRole
    balance: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Paginated users list response."""
    users: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# Catalogue schemas
class PlatformResponse(BaseModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    """A shared subscription offer. Credentials are never part of it."""
    id: int
    platform_id: int
    platform_name: str
    owner_id: int
    owner_name: str
    price_per_hour: Decimal
    is_active: bool
    is_verified: bool
    verification_note: Optional[str] = None
    total_grants: int
    expires_at: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_model(cls, subscription: SharedSubscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            platform_id=subscription.platform_id,
            platform_name=subscription.platform.name,
            owner_id=subscription.owner_id,
            owner_name=subscription.owner.name,
            price_per_hour=subscription.price_per_hour,
            is_active=subscription.is_active,
            is_verified=subscription.is_verified,
            verification_note=subscription.verification_note,
            total_grants=subscription.total_grants,
            expires_at=subscription.expires_at,
            created_at=subscription.created_at,
        )


# Access and money schemas
class AccessGrantResponse(BaseModel):
    id: int
    subscription_id: int
    buyer_id: int
    price_paid: Decimal
    commission_amount: Decimal
    commission_settled: bool
    status: AccessStatus
    start_time: int
    end_time: int
    hours: int
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    reference_id: Optional[str] = None
    commission_percentage: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    access_grant_id: Optional[int] = None
    notes: Optional[str] = None
    processed_by_admin_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TopupRequestResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    transaction_id: str
    screenshot_url: Optional[str] = None
    status: TopupStatus
    reviewed_by_admin_id: Optional[int] = None
    review_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    subscription_id: int
    reason: str
    status: ReportStatus
    resolved_by_admin_id: Optional[int] = None
    resolution_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
