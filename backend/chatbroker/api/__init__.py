"""API module."""

from .chat import router as chat_router
from .settings import router as settings_router
from .report import router as report_router
from .errors import register_exception_handlers

__all__ = ['chat_router', 'settings_router', 'report_router', 'register_exception_handlers']
