"""Services module - chat exchange and usage reports."""

from .chat_service import ChatService, derive_title
from .report_service import ReportService, summarize_models, summarize_usage

__all__ = ['ChatService', 'derive_title', 'ReportService', 'summarize_models', 'summarize_usage']
