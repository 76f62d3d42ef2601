"""
FastAPI dependencies shared by the routers.

Tests override ``get_stores`` / ``get_llm_service`` through
``app.dependency_overrides``.
"""

from fastapi import Depends

from ..llm import LLMService
from ..llm.service import get_llm_service as _get_llm_service
from ..services import ChatService, ReportService
from ..storage.stores import Stores, get_stores as _get_stores


def get_stores() -> Stores:
    return _get_stores()


def get_llm_service() -> LLMService:
    return _get_llm_service()


def get_chat_service(
    stores: Stores = Depends(get_stores),
    llm_service: LLMService = Depends(get_llm_service),
) -> ChatService:
    return ChatService(stores, llm_service)


def get_report_service(stores: Stores = Depends(get_stores)) -> ReportService:
    return ReportService(stores)
