"""
Chat API endpoints - prompt exchange, model list and session history.
"""

from fastapi import APIRouter, Depends, Query

from ..core.errors import NotFoundError
from ..llm import LLMService
from ..models import ChatRequest
from ..services import ChatService
from ..storage.stores import Stores
from .deps import get_chat_service, get_llm_service, get_stores

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def send_message(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Send a prompt to a model and store both turns.

    A new session is started when ``sessionId`` is omitted.
    """
    response = await chat_service.send_message(request.message, request.model, request.session_id)
    return {
        "message": response.message.to_dict(),
        "session": response.session.model_dump(),
        "usage": response.usage,
    }


@router.get("/models")
async def list_models(llm_service: LLMService = Depends(get_llm_service)):
    """Available models as ``{id, name, provider, type}``."""
    return {"models": llm_service.available_models()}


@router.get("/sessions")
async def list_sessions(
    limit: int = Query(50, ge=1),
    stores: Stores = Depends(get_stores),
):
    """Sessions with message counts, most recently updated first."""
    sessions = await stores.sessions.list_with_stats(limit)
    return {"sessions": [s.model_dump(mode="json") for s in sessions]}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, stores: Stores = Depends(get_stores)):
    session = await stores.sessions.get(session_id)
    if session is None:
        raise NotFoundError("Session not found")
    messages = await stores.messages.list_for_session(session_id)
    return {
        "session": session.model_dump(mode="json"),
        "messages": [m.to_dict() for m in messages],
    }


@router.get("/sessions/{session_id}/messages")
async def get_session_messages(
    session_id: str,
    limit: int = Query(100, ge=1),
    stores: Stores = Depends(get_stores),
):
    messages = await stores.messages.list_for_session(session_id, limit=limit)
    return {"messages": [m.to_dict() for m in messages]}


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, stores: Stores = Depends(get_stores)):
    """Delete a session together with all of its messages."""
    if not await stores.sessions.delete(session_id):
        raise NotFoundError("Session not found")
    return {"message": "Session deleted successfully"}
