"""
Shared subscription routes: browse offers, list your own, buy timed access.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import User
from subshare.api.middleware.auth_context import get_current_user
from subshare.api.middleware.rate_limiter import rate_limit
from subshare.api.schemas import AccessGrantResponse, SubscriptionResponse
from subshare.services.ledger import LedgerService
from subshare.services.subscriptions import SharedSubscriptionService, SubscriptionFilter
from subshare.services.unlock import SubscriptionUnlockService
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class SubscriptionCreateRequest(BaseModel):
    platform_id: int
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    price_per_hour: Decimal = Field(..., gt=0, decimal_places=2)
    expires_at: Optional[int] = Field(None, description="Unix time the owner's own plan runs out")


class SubscriptionUpdateRequest(BaseModel):
    """Partial update. username and password must be sent together."""
    username: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=1)
    price_per_hour: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    is_active: Optional[bool] = None


class UnlockRequest(BaseModel):
    hours: int = Field(..., ge=1, le=720, description="Access duration in hours")


class UnlockResponse(BaseModel):
    grant: AccessGrantResponse
    total_paid: Decimal
    hours: int
    commission_percentage: Decimal
    commission_amount: Decimal
    owner_amount: Decimal
    commission_paid: bool
    new_balance: Decimal


class CredentialsResponse(BaseModel):
    subscription_id: int
    platform_name: str
    username: str
    password: str
    access_expires_at: int


@router.get("/", response_model=List[SubscriptionResponse])
async def list_subscriptions(
    platform_id: Optional[int] = Query(None),
    max_price: Optional[Decimal] = Query(None, gt=0, description="Maximum price per hour"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Marketplace listing: active, verified offers only."""
    criteria = SubscriptionFilter(
        platform_id=platform_id,
        verified_only=True,
        active_only=True,
        max_price=max_price,
    )
    subscriptions = SharedSubscriptionService(db).list_subscriptions(criteria, limit=limit, offset=offset)
    return [SubscriptionResponse.from_model(s) for s in subscriptions]


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return SubscriptionResponse.from_model(SharedSubscriptionService(db).get(subscription_id))


@router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    data: SubscriptionCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List a subscription for rent. It becomes purchasable once an admin verifies it."""
    service = SharedSubscriptionService(db)
    subscription = service.create(
        owner_id=user.id,
        platform_id=data.platform_id,
        username=data.username,
        password=data.password,
        price_per_hour=data.price_per_hour,
        expires_at=data.expires_at,
    )
    return SubscriptionResponse.from_model(service.get(subscription.id))


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    data: SubscriptionUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SharedSubscriptionService(db)
    service.update(
        subscription_id,
        user.id,
        username=data.username,
        password=data.password,
        price_per_hour=data.price_per_hour,
        is_active=data.is_active,
    )
    return SubscriptionResponse.from_model(service.get(subscription_id))


@router.delete("/{subscription_id}", response_model=SubscriptionResponse)
async def delete_subscription(
    subscription_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Take an offer off the market. Existing grants run to their end time."""
    service = SharedSubscriptionService(db)
    service.deactivate(subscription_id, user.id)
    return SubscriptionResponse.from_model(service.get(subscription_id))


@router.post("/{subscription_id}/unlock", response_model=UnlockResponse, status_code=status.HTTP_201_CREATED)
@rate_limit(limit=20, window_seconds=60)
async def unlock_subscription(
    request: Request,
    subscription_id: int,
    data: UnlockRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Buy `hours` of access.

    The buyer is debited, the owner credited and the admin commission booked
    in one transaction together with the new access grant.
    """
    result = SubscriptionUnlockService(db).unlock(subscription_id, user.id, data.hours)
    return UnlockResponse(
        grant=AccessGrantResponse.model_validate(result.grant),
        total_paid=result.total_paid,
        hours=result.hours,
        commission_percentage=result.commission.percentage,
        commission_amount=result.commission.commission_amount,
        owner_amount=result.commission.owner_amount,
        commission_paid=result.commission_paid,
        new_balance=LedgerService(db).get_balance(user.id),
    )


@router.get("/{subscription_id}/credentials", response_model=CredentialsResponse)
async def get_subscription_credentials(
    subscription_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Decrypted login for a buyer whose access is still live."""
    credentials = SharedSubscriptionService(db).get_credentials(subscription_id, user.id)
    logger.info(f"Credentials for subscription {subscription_id} revealed to user {user.id}")
    return CredentialsResponse(
        subscription_id=credentials.subscription_id,
        platform_name=credentials.platform_name,
        username=credentials.username,
        password=credentials.password,
        access_expires_at=credentials.access_expires_at,
    )
