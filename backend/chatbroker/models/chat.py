"""
Chat Models - request and response bodies of ``POST /api/chat``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .message import Message


class ChatRequest(BaseModel):
    """A prompt for a model, optionally continuing an existing session."""
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    message: Optional[str] = None
    model: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")


class SessionRef(BaseModel):
    id: str
    title: Optional[str] = None


class ChatResponse(BaseModel):
    """Assistant message plus the session it was appended to."""
    message: Message
    session: SessionRef
    usage: Optional[Dict[str, Any]] = None
