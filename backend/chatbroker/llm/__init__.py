"""LLM module - provides a unified adapter over the text and image providers."""

from .base import LLMProvider, LLMMessage, LLMResult
from .catalog import MODEL_CATALOG, ModelSpec
from .openai_provider import OpenAIChatProvider, OpenAIImageProvider
from .anthropic_provider import AnthropicProvider
from .factory import create_llm_provider, create_provider_table
from .service import LLMService, get_llm_service

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResult',
    'MODEL_CATALOG',
    'ModelSpec',
    'OpenAIChatProvider',
    'OpenAIImageProvider',
    'AnthropicProvider',
    'create_llm_provider',
    'create_provider_table',
    'LLMService',
    'get_llm_service',
]
