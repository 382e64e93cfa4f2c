"""
Report routes: users flag broken or misleading offers, admins act on them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.database.connection import get_db
from subshare.database.models import ReportStatus, User
from subshare.api.middleware.auth_context import get_current_user, require_admin
from subshare.api.schemas import MessageResponse, ReportResponse
from subshare.services.reports import ReportService

router = APIRouter()


class ReportCreateRequest(BaseModel):
    subscription_id: int
    reason: str = Field(..., min_length=3, max_length=2000)


class ReportResolveRequest(BaseModel):
    status: ReportStatus = Field(..., description="resolved or dismissed")
    notes: Optional[str] = None


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ReportService(db).create_report(user.id, data.subscription_id, data.reason)


@router.get("/my-reports", response_model=List[ReportResponse])
async def list_my_reports(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ReportService(db).list_user_reports(user.id)


@router.get("/admin", response_model=List[ReportResponse])
async def list_reports(
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return ReportService(db).list_reports(status=status_filter)


@router.get("/admin/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return ReportService(db).get_report(report_id)


@router.post("/admin/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(
    report_id: int,
    data: ReportResolveRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Close a pending report. Resolving also takes the subscription off the market."""
    return ReportService(db).resolve_report(report_id, admin.id, data.status, notes=data.notes)


@router.delete("/admin/{report_id}", response_model=MessageResponse)
async def delete_report(
    report_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ReportService(db).delete_report(report_id)
    return MessageResponse(message="Report deleted")
