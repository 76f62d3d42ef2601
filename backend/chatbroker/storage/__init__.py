"""Storage module - database handle and the conversation, settings and API key stores."""

from .database import Base, Database, init_database, get_database
from .session_store import SessionStore
from .message_store import MessageStore
from .settings_store import SettingsStore, DEFAULT_SETTINGS
from .api_key_store import ApiKeyStore, SUPPORTED_PROVIDERS
from .stores import Stores, init_stores, get_stores

__all__ = [
    'Base', 'Database', 'init_database', 'get_database',
    'SessionStore', 'MessageStore', 'SettingsStore', 'DEFAULT_SETTINGS',
    'ApiKeyStore', 'SUPPORTED_PROVIDERS',
    'Stores', 'init_stores', 'get_stores',
]
