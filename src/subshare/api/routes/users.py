"""
Routes for the signed-in user: profile, wallet history and owned or bought access.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import AccessStatus, User
from subshare.api.middleware.auth_context import get_current_user
from subshare.api.schemas import (
    AccessGrantResponse,
    MessageResponse,
    SubscriptionResponse,
    TransactionResponse,
    UserResponse,
)
from subshare.services.access import AccessGrantManager
from subshare.services.accounts import AccountService
from subshare.services.ledger import LedgerService
from subshare.services.subscriptions import SharedSubscriptionService
from subshare.utils.transaction import transaction_scope

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class BalanceResponse(BaseModel):
    user_id: int
    balance: Decimal


@router.get("/profile", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)):
    return user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AccountService(db).update_profile(user.id, name=data.name)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AccountService(db).change_password(user.id, data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")


@router.get("/wallet-balance", response_model=BalanceResponse)
async def get_wallet_balance(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return BalanceResponse(user_id=user.id, balance=LedgerService(db).get_balance(user.id))


@router.get("/wallet-transactions", response_model=List[TransactionResponse])
async def get_wallet_transactions(
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ledger history, newest first."""
    return LedgerService(db).list_user_transactions(user.id, limit=limit)


@router.get("/my-subscriptions", response_model=List[AccessGrantResponse])
async def get_my_access(
    status: Optional[AccessStatus] = Query(None, description="Filter by grant status"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Access grants the user has bought."""
    return AccessGrantManager(db).list_user_grants(user.id, status=status)


@router.post("/my-subscriptions/{grant_id}/cancel", response_model=AccessGrantResponse)
async def cancel_my_access(
    grant_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Give up an active grant early. The purchase is not refunded."""
    with transaction_scope(db):
        grant = AccessGrantManager(db).cancel_access(grant_id, user.id)
    return grant


@router.get("/shared-subscriptions", response_model=List[SubscriptionResponse])
async def get_my_shared_subscriptions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Offers the user has listed, including unverified and inactive ones."""
    return [SubscriptionResponse.from_model(s) for s in SharedSubscriptionService(db).list_owned(user.id)]
