"""
Platform settings - admin-editable key/value pairs.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.database.models import PlatformSetting
from subshare.services.commission import to_percentage
from subshare.utils.config import get_config
from subshare.utils.exceptions import ConfigurationError, ConflictError, ValidationFailedError
from subshare.utils.logger import get_logger

logger = get_logger(__name__)

COMMISSION_KEY = "admin_commission_percentage"


class SettingsService:

    def __init__(self, db: Session):
        self.db = db

    def list_settings(self) -> List[PlatformSetting]:
        return self.db.query(PlatformSetting).order_by(PlatformSetting.key).all()

    def get(self, key: str) -> Optional[PlatformSetting]:
        return self.db.query(PlatformSetting).filter(PlatformSetting.key == key).first()

    def upsert(self, key: str, value: str, description: Optional[str] = None) -> PlatformSetting:
        """Create or overwrite a setting. The commission key must hold a 0-100 number."""
        key = key.strip()
        if not key:
            raise ValidationFailedError("Setting key is required")

        value = str(value).strip()
        if key == COMMISSION_KEY:
            value = str(to_percentage(value))

        setting = self.get(key)
        if setting is None:
            setting = PlatformSetting(key=key, value=value, description=description)
            self.db.add(setting)
        else:
            setting.value = value
            if description is not None:
                setting.description = description

        try:
            self.db.flush()
        except IntegrityError:
            # Another writer created the key first; the caller rolls back
            raise ConflictError("Setting already exists", {"key": key})
        logger.info(f"Platform setting updated: {key}={value}")
        return setting

    def get_commission_percentage(self) -> Decimal:
        """Commission override from settings, else ADMIN_COMMISSION_PERCENTAGE."""
        setting = self.get(COMMISSION_KEY)
        if setting is None:
            return get_config().admin_commission_percentage

        try:
            return to_percentage(setting.value)
        except ValidationFailedError as e:
            raise ConfigurationError(
                f"Stored commission percentage is invalid: {setting.value}",
                e.details,
            )
