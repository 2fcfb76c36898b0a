"""Kitchen switch accessor backed by the settings table."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.setting import KITCHEN_OPEN_KEY, Setting

logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and toggles the global ``kitchen_open`` flag."""

    def __init__(self, db: Session):
        self.db = db

    def is_kitchen_open(self) -> bool:
        setting = self.db.execute(
            select(Setting).where(Setting.key == KITCHEN_OPEN_KEY)
        ).scalar_one_or_none()
        if setting is None or setting.value is None:
            return settings.default_kitchen_open
        return bool(setting.value)

    def set_kitchen_open(self, is_open: bool) -> bool:
        setting = self.db.execute(
            select(Setting).where(Setting.key == KITCHEN_OPEN_KEY)
        ).scalar_one_or_none()
        if setting is None:
            setting = Setting(key=KITCHEN_OPEN_KEY, value=is_open)
            self.db.add(setting)
        else:
            setting.value = is_open
        self.db.commit()
        logger.info(f"Kitchen switched {'open' if is_open else 'closed'}")
        return is_open


class StaticKitchenSettings:
    """Fixed kitchen state, for callers that already know it."""

    def __init__(self, is_open: bool = True):
        self.is_open = is_open

    def is_kitchen_open(self) -> bool:
        return self.is_open
