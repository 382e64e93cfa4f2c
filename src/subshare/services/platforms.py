"""
Platform catalogue - the streaming services shared subscriptions belong to.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.database.models import SubscriptionPlatform
from subshare.utils.exceptions import ConflictError, NotFoundError, ValidationFailedError
from subshare.utils.logger import get_logger
from subshare.utils.transaction import transaction_scope

logger = get_logger(__name__)


def _name_taken(name: str) -> ConflictError:
    return ConflictError("Platform with this name already exists", {"name": name})


class PlatformService:

    def __init__(self, db: Session):
        self.db = db

    def _listing(self, predicates: list) -> List[SubscriptionPlatform]:
        return (
            self.db.query(SubscriptionPlatform)
            .filter(*predicates)
            .order_by(SubscriptionPlatform.name.asc())
            .all()
        )

    def list_platforms(self, active_only: bool = False) -> List[SubscriptionPlatform]:
        predicates = [SubscriptionPlatform.is_active.is_(True)] if active_only else []
        return self._listing(predicates)

    def search(self, term: str, active_only: bool = False) -> List[SubscriptionPlatform]:
        predicates = [func.lower(SubscriptionPlatform.name).contains(term.strip().lower())]
        if active_only:
            predicates.append(SubscriptionPlatform.is_active.is_(True))
        return self._listing(predicates)

    def get(self, platform_id: int) -> SubscriptionPlatform:
        platform = self.db.query(SubscriptionPlatform).filter(SubscriptionPlatform.id == platform_id).first()
        if platform is None:
            raise NotFoundError("Platform", platform_id)
        return platform

    def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        predicates = [SubscriptionPlatform.name == name]
        if exclude_id is not None:
            predicates.append(SubscriptionPlatform.id != exclude_id)
        if self.db.query(SubscriptionPlatform.id).filter(*predicates).first() is not None:
            raise _name_taken(name)

    def create(self, name: str, logo_url: Optional[str] = None, created_by: Optional[int] = None) -> SubscriptionPlatform:
        name = name.strip()
        self._ensure_name_free(name)

        platform = SubscriptionPlatform(name=name, logo_url=logo_url, created_by=created_by, is_active=True)
        try:
            with transaction_scope(self.db):
                self.db.add(platform)
                self.db.flush()
        except IntegrityError:
            # Unique name index caught a concurrent insert
            raise _name_taken(name)

        logger.info(f"Platform created: {name} ({platform.id})")
        return platform

    def update(
        self,
        platform_id: int,
        name: Optional[str] = None,
        logo_url: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> SubscriptionPlatform:
        if name is None and logo_url is None and is_active is None:
            raise ValidationFailedError("No data to update")

        try:
            with transaction_scope(self.db):
                platform = self.get(platform_id)
                if name is not None:
                    name = name.strip()
                    self._ensure_name_free(name, exclude_id=platform_id)
                    platform.name = name
                if logo_url is not None:
                    platform.logo_url = logo_url
                if is_active is not None:
                    platform.is_active = is_active
                self.db.flush()
        except IntegrityError:
            raise _name_taken(name)

        logger.info(f"Platform {platform_id} updated")
        return platform

    def deactivate(self, platform_id: int) -> SubscriptionPlatform:
        """Soft delete: existing offers keep their platform reference."""
        with transaction_scope(self.db):
            platform = self.get(platform_id)
            platform.is_active = False
            self.db.flush()

        logger.info(f"Platform {platform_id} deactivated")
        return platform
