"""
LLM Provider Factory - Builds the handler table keyed by catalog ``kind``.
"""

from typing import Dict

from .base import LLMProvider
from .catalog import ANTHROPIC_MESSAGES, OPENAI_CHAT, OPENAI_IMAGE
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIChatProvider, OpenAIImageProvider

_HANDLERS = {
    OPENAI_CHAT: OpenAIChatProvider,
    OPENAI_IMAGE: OpenAIImageProvider,
    ANTHROPIC_MESSAGES: AnthropicProvider,
}


def create_llm_provider(kind: str) -> LLMProvider:
    """
    Create the handler for a catalog ``kind``.

    Args:
        kind: Handler key from ``ModelSpec.kind``

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If no handler is registered for ``kind``
    """
    handler_cls = _HANDLERS.get(kind)
    if handler_cls is None:
        raise ValueError(f"Unsupported LLM provider: {kind}")
    return handler_cls()


def create_provider_table() -> Dict[str, LLMProvider]:
    """Create one handler instance per registered kind."""
    return {kind: create_llm_provider(kind) for kind in _HANDLERS}
