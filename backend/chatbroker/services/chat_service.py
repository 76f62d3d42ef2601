"""
Chat Service - one prompt/response exchange.

Resolves or creates the session, stores the user message, sends the
conversation (or, for image models, only the prompt) through the provider
adapter, and stores the assistant reply.
"""

import logging
from typing import Optional

from ..core.errors import InvalidPromptError, NotFoundError
from ..llm import LLMMessage, LLMService
from ..llm.catalog import IMAGE
from ..models.chat import ChatResponse, SessionRef
from ..models.message import ImageMetadata
from ..storage.stores import Stores

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50
IMAGE_TITLE_MAX_LENGTH = 30
HISTORY_LIMIT = 100


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def derive_title(prompt: str, is_image: bool = False) -> str:
    """
    Session title from the first prompt.

    Text sessions use up to 50 characters; image sessions are prefixed with
    ``Image: `` and use up to 30. Longer prompts are cut and get ``...``.
    """
    if is_image:
        return f"Image: {_truncate(prompt, IMAGE_TITLE_MAX_LENGTH)}"
    return _truncate(prompt, TITLE_MAX_LENGTH)


class ChatService:
    """Coordinates the conversation store and the provider adapter."""

    def __init__(self, stores: Stores, llm_service: LLMService):
        self.stores = stores
        self.llm_service = llm_service

    async def send_message(
        self,
        prompt: Optional[str],
        model: Optional[str],
        session_id: Optional[str] = None,
    ) -> ChatResponse:
        """
        Send a prompt to ``model`` and append both turns to the session.

        Args:
            prompt: User prompt text
            model: Public model id
            session_id: Existing session to continue; a new one is created if omitted

        Returns:
            ChatResponse with the stored assistant message

        Raises:
            InvalidPromptError: Empty prompt
            UnsupportedModelError: Unknown model (nothing is stored)
            NotFoundError: ``session_id`` does not exist
            MissingCredentialError, ProviderError: From the provider adapter;
                the user message has already been stored at that point
        """
        if not prompt or not prompt.strip():
            raise InvalidPromptError("Message is required")
        spec = self.llm_service.get_spec(model or "")

        sessions = self.stores.sessions
        messages = self.stores.messages

        if session_id:
            session = await sessions.get(session_id)
            if session is None:
                raise NotFoundError("Session not found")
            if session.title is None:
                session = await sessions.update(session.id, title=derive_title(prompt, spec.is_image))
        else:
            session = await sessions.create(derive_title(prompt, spec.is_image), spec.id)

        await messages.create(session.id, prompt, "user")

        if spec.is_image:
            llm_messages = [LLMMessage.text("user", prompt)]
        else:
            history = await messages.list_recent_for_session(session.id, limit=HISTORY_LIMIT)
            llm_messages = [LLMMessage.text(m.role, m.content) for m in history]

        options = await self.stores.settings.get_all()
        credentials = await self.stores.api_keys.get_credentials()
        logger.info(
            "Sending chat request",
            extra={"extra_fields": {
                "session_id": session.id,
                "model": spec.id,
                "messages": len(llm_messages),
                "credentials": {p: bool(k) for p, k in credentials.items()},
            }}
        )

        result = await self.llm_service.send_message(spec.id, llm_messages, credentials, options)

        if result.type == IMAGE:
            metadata = ImageMetadata(
                prompt=result.prompt,
                revised_prompt=result.revised_prompt,
                image_url=result.content,
                **result.image_options,
            )
            reply = await messages.create(
                session.id, result.content, "assistant", spec.id,
                token_count=0, content_type="image", image_metadata=metadata,
            )
        else:
            reply = await messages.create(
                session.id, result.content, "assistant", spec.id,
                token_count=result.total_tokens, content_type="text",
            )

        return ChatResponse(
            message=reply,
            session=SessionRef(id=session.id, title=session.title),
            usage=result.usage,
        )
