"""Models module."""

from .message import ImageMetadata, Message
from .session import Session
from .settings import ApiKeyStatus, ApiKeyTest, SettingsUpdate, SettingValue
from .report import UsageStat
from .chat import ChatRequest, ChatResponse, SessionRef

__all__ = [
    'ImageMetadata', 'Message',
    'Session',
    'ApiKeyStatus', 'ApiKeyTest', 'SettingsUpdate', 'SettingValue',
    'UsageStat',
    'ChatRequest', 'ChatResponse', 'SessionRef',
]
