"""
Platform catalogue routes.

The active platform list is read on every marketplace page, so it is cached
in Redis and dropped whenever an admin changes the catalogue.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from subshare.cache.redis_cache import get_cache
from subshare.database.connection import get_db
from subshare.database.models import User
from subshare.api.middleware.auth_context import require_admin
from subshare.api.schemas import PlatformResponse
from subshare.services.platforms import PlatformService
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

CACHE_NAMESPACE = "platforms"
ACTIVE_LIST_KEY = "active"


class PlatformCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)


class PlatformUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


def _invalidate_platform_cache() -> None:
    get_cache().delete(CACHE_NAMESPACE, ACTIVE_LIST_KEY)


@router.get("/", response_model=List[PlatformResponse])
async def list_platforms(
    active_only: bool = Query(True),
    db: Session = Depends(get_db)
):
    if not active_only:
        return PlatformService(db).list_platforms(active_only=False)

    cache = get_cache()
    cached = cache.get(CACHE_NAMESPACE, ACTIVE_LIST_KEY)
    if cached is not None:
        return cached

    platforms = [
        PlatformResponse.model_validate(p).model_dump(mode="json")
        for p in PlatformService(db).list_platforms(active_only=True)
    ]
    cache.set(CACHE_NAMESPACE, ACTIVE_LIST_KEY, platforms)
    return platforms


@router.get("/search", response_model=List[PlatformResponse])
async def search_platforms(
    q: str = Query(..., min_length=1, description="Part of the platform name"),
    db: Session = Depends(get_db)
):
    return PlatformService(db).search(q, active_only=True)


@router.get("/{platform_id}", response_model=PlatformResponse)
async def get_platform(platform_id: int, db: Session = Depends(get_db)):
    return PlatformService(db).get(platform_id)


@router.post("/", response_model=PlatformResponse, status_code=status.HTTP_201_CREATED)
async def create_platform(
    data: PlatformCreateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    platform = PlatformService(db).create(data.name, logo_url=data.logo_url, created_by=admin.id)
    _invalidate_platform_cache()
    return platform


@router.put("/{platform_id}", response_model=PlatformResponse)
async def update_platform(
    platform_id: int,
    data: PlatformUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    platform = PlatformService(db).update(
        platform_id,
        name=data.name,
        logo_url=data.logo_url,
        is_active=data.is_active,
    )
    _invalidate_platform_cache()
    return platform


@router.delete("/{platform_id}", response_model=PlatformResponse)
async def delete_platform(
    platform_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a platform. Offers already listed on it are kept."""
    platform = PlatformService(db).deactivate(platform_id)
    _invalidate_platform_cache()
    logger.info(f"Platform {platform_id} deactivated by admin {admin.id}")
    return platform
