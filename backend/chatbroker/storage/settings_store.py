"""
Settings Store - flat string key/value settings.

Values are always stored as strings; callers parse numbers and booleans.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete, select

from .database import Database, utcnow
from .orm import SettingModel

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, str] = {
    "default_model": "gpt-3.5-turbo",
    "max_tokens": "2000",
    "temperature": "0.7",
    "logging_enabled": "true",
}


def to_setting_value(value: Any) -> Optional[str]:
    """
    Coerce a value to its stored string form (``None`` stays ``None``).

    Lists and objects are stored as JSON text.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class SettingsStore:
    """Persistence operations for settings."""

    def __init__(self, database: Database):
        self.database = database

    async def get(self, key: str) -> Optional[str]:
        async with self.database.transaction() as db:
            row = await db.get(SettingModel, key)
            return row.value if row is not None else None

    async def get_all(self) -> Dict[str, str]:
        async with self.database.transaction() as db:
            rows = (await db.execute(select(SettingModel))).scalars().all()
            return {row.key: row.value for row in rows}

    async def set(self, key: str, value: Any) -> Dict[str, Optional[str]]:
        """Insert or replace one setting (last write wins)."""
        stored = to_setting_value(value)
        async with self.database.transaction() as db:
            await db.merge(SettingModel(key=key, value=stored, updated_at=utcnow()))
        return {"key": key, "value": stored}

    async def set_multiple(self, values: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """
        Insert or replace several settings as one all-or-nothing unit.

        Raises:
            PersistenceError: If any entry is rejected; no entry is committed
        """
        stored = {key: to_setting_value(value) for key, value in values.items()}
        if not stored:
            return stored

        now = utcnow()
        async with self.database.transaction() as db:
            for key, value in stored.items():
                await db.merge(SettingModel(key=key, value=value, updated_at=now))
            await db.flush()

        logger.info("Settings updated", extra={"extra_fields": {"keys": sorted(stored)}})
        return stored

    async def delete(self, key: str) -> bool:
        async with self.database.transaction() as db:
            result = await db.execute(delete(SettingModel).where(SettingModel.key == key))
            return result.rowcount > 0

    async def seed_defaults(self, defaults: Optional[Mapping[str, str]] = None) -> None:
        """Insert default settings that are not present yet; existing values are kept."""
        defaults = DEFAULT_SETTINGS if defaults is None else defaults
        async with self.database.transaction() as db:
            existing = set((await db.execute(select(SettingModel.key))).scalars().all())
            missing = {k: v for k, v in defaults.items() if k not in existing}
            for key, value in missing.items():
                db.add(SettingModel(key=key, value=value, updated_at=utcnow()))

        if missing:
            logger.info("Default settings loaded", extra={"extra_fields": {"keys": sorted(missing)}})
