"""
Admin panel routes for users, balances, the ledger, verification and settings.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import TransactionStatus, TransactionType, User, UserRole
from subshare.api.middleware.auth_context import require_admin
from subshare.api.schemas import (
    SubscriptionResponse,
    TransactionResponse,
    UserListResponse,
    UserResponse,
)
from subshare.services.accounts import AccountService, UserQuery
from subshare.services.ledger import LedgerService, TransactionFilter
from subshare.services.settings import SettingsService
from subshare.services.verification import VerificationService
from subshare.utils.logger import get_logger
from subshare.utils.transaction import transaction_scope

logger = get_logger(__name__)

router = APIRouter()


class BalanceAdjustRequest(BaseModel):
    """Signed correction; negative amounts take money out of the wallet."""
    amount: Decimal = Field(..., decimal_places=2)
    notes: str = Field(..., min_length=1, max_length=500)


class RoleUpdateRequest(BaseModel):
    role: UserRole


class VerifyRequest(BaseModel):
    is_verified: bool
    note: Optional[str] = None


class SettingResponse(BaseModel):
    key: str
    value: str
    description: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SettingUpdateRequest(BaseModel):
    value: str = Field(..., min_length=1)
    description: Optional[str] = None


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by email or name"),
    role: Optional[UserRole] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    users, total = AccountService(db).list_users(
        UserQuery(search=search, role=role, page=page, page_size=page_size)
    )
    logger.info(f"Loading users: page={page}, total={total}, search={search}")

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return AccountService(db).get_user(user_id)


@router.post("/users/{user_id}/balance", response_model=TransactionResponse)
async def adjust_balance(
    user_id: int,
    data: BalanceAdjustRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Manual wallet correction, recorded in the ledger like any other movement."""
    with transaction_scope(db):
        transaction = LedgerService(db).admin_adjust(user_id, data.amount, admin.id, data.notes)

    logger.warning(f"Admin {admin.id} adjusted balance of user {user_id} by {data.amount}")
    return transaction


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    user_id: int,
    data: RoleUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return AccountService(db).set_role(user_id, data.role)


@router.get("/transactions", response_model=List[TransactionResponse])
async def list_transactions(
    user_id: Optional[int] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    transaction_status: Optional[TransactionStatus] = Query(None, alias="status"),
    access_grant_id: Optional[int] = Query(None),
    created_from: Optional[datetime] = Query(None),
    created_to: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    criteria = TransactionFilter(
        user_id=user_id,
        type=transaction_type,
        status=transaction_status,
        access_grant_id=access_grant_id,
        created_from=created_from,
        created_to=created_to,
    )
    return LedgerService(db).list_transactions(criteria, limit=limit)


@router.get("/subscriptions/pending", response_model=List[SubscriptionResponse])
async def list_pending_verifications(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return [SubscriptionResponse.from_model(s) for s in VerificationService(db).list_pending_verifications()]


@router.post("/subscriptions/{subscription_id}/verify", response_model=SubscriptionResponse)
async def verify_subscription(
    subscription_id: int,
    data: VerifyRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    subscription = VerificationService(db).verify_subscription(
        subscription_id, admin.id, data.is_verified, note=data.note
    )
    return SubscriptionResponse.from_model(subscription)


@router.get("/settings", response_model=List[SettingResponse])
async def list_settings(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return SettingsService(db).list_settings()


@router.put("/settings/{key}", response_model=SettingResponse)
async def update_setting(
    key: str,
    data: SettingUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    with transaction_scope(db):
        setting = SettingsService(db).upsert(key, data.value, description=data.description)

    logger.warning(f"Admin {admin.id} set platform setting {key}")
    return setting
