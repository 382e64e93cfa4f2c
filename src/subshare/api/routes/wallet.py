"""
Wallet topup routes.

Users claim an off-platform payment by its transaction id; an admin checks
the payment and approves (crediting the wallet) or rejects the claim.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import TopupStatus, User
from subshare.api.middleware.auth_context import get_current_user, require_admin
from subshare.api.schemas import TopupRequestResponse
from subshare.services.wallet import WalletService

router = APIRouter()


class TopupCreateRequest(BaseModel):
    """Claim for a payment made outside the platform."""
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    transaction_id: str = Field(..., min_length=1, max_length=255)
    screenshot_url: Optional[str] = Field(None, max_length=500)


class ReviewRequest(BaseModel):
    notes: Optional[str] = None


@router.post("/topup-request", response_model=TopupRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_topup_request(
    data: TopupCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WalletService(db).create_topup_request(
        user_id=user.id,
        amount=data.amount,
        transaction_id=data.transaction_id,
        screenshot_url=data.screenshot_url,
    )


@router.get("/topup-requests", response_model=List[TopupRequestResponse])
async def list_my_topup_requests(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WalletService(db).list_user_requests(user.id)


@router.get("/topup-requests/{request_id}", response_model=TopupRequestResponse)
async def get_my_topup_request(
    request_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WalletService(db).get_request(request_id, user_id=user.id)


@router.delete("/topup-requests/{request_id}", response_model=TopupRequestResponse)
async def cancel_topup_request(
    request_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Withdraw a request that is still pending."""
    return WalletService(db).cancel(request_id, user.id)


# Admin review
@router.get("/admin/topup-requests", response_model=List[TopupRequestResponse])
async def list_topup_requests(
    status_filter: Optional[TopupStatus] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return WalletService(db).list_requests(status=status_filter)


@router.post("/admin/topup-requests/{request_id}/approve", response_model=TopupRequestResponse)
async def approve_topup_request(
    request_id: int,
    data: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Credit the wallet and mark the request approved."""
    return WalletService(db).approve(request_id, admin.id, notes=data.notes if data else None)


@router.post("/admin/topup-requests/{request_id}/reject", response_model=TopupRequestResponse)
async def reject_topup_request(
    request_id: int,
    data: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return WalletService(db).reject(request_id, admin.id, notes=data.notes if data else None)
