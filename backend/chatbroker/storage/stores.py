"""
Store registry - the set of stores bound to one database.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from .api_key_store import ApiKeyStore
from .database import Database
from .message_store import MessageStore
from .session_store import SessionStore
from .settings_store import SettingsStore


@dataclass
class Stores:
    """All persistence operations of the conversation store."""
    database: Database
    sessions: SessionStore
    messages: MessageStore
    settings: SettingsStore
    api_keys: ApiKeyStore

    @classmethod
    def create(cls, database: Database, env_keys: Optional[Mapping[str, Optional[str]]] = None) -> "Stores":
        return cls(
            database=database,
            sessions=SessionStore(database),
            messages=MessageStore(database),
            settings=SettingsStore(database),
            api_keys=ApiKeyStore(database, env_keys),
        )

    async def initialize(self) -> None:
        """Create/upgrade the schema and seed default settings."""
        await self.database.init_schema()
        await self.settings.seed_defaults()


# Global store registry
_stores: Optional[Stores] = None


def init_stores(database: Database, env_keys: Optional[Mapping[str, Optional[str]]] = None) -> Stores:
    """
    Initialize the global store registry.

    Args:
        database: Database the stores operate on
        env_keys: Provider -> environment API key fallback
    """
    global _stores
    _stores = Stores.create(database, env_keys)
    return _stores


def get_stores() -> Stores:
    """
    Get the global store registry.

    Raises:
        RuntimeError: If the stores have not been initialized
    """
    if _stores is None:
        raise RuntimeError("Stores not initialized. Call init_stores() first.")
    return _stores
