"""
LLM Service - single entry point of the provider adapter.

Looks the model id up in the catalog, validates the request shape for image
models and dispatches to the handler registered for the model's kind.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..core.errors import InvalidPromptError, UnsupportedModelError
from .base import LLMMessage, LLMProvider, LLMResult
from .catalog import KEY_TEST_MODELS, MODEL_CATALOG, ModelSpec
from .factory import create_provider_table

logger = logging.getLogger(__name__)

MessageLike = Union[LLMMessage, Mapping[str, Any]]

KEY_TEST_PROMPT = 'Hello, this is a test message. Please respond with "API key test successful".'


class LLMService:
    """Stateless adapter; safe to share one instance across requests."""

    def __init__(
        self,
        catalog: Optional[Mapping[str, ModelSpec]] = None,
        providers: Optional[Mapping[str, LLMProvider]] = None,
    ):
        self.catalog = catalog if catalog is not None else MODEL_CATALOG
        self._providers = dict(providers) if providers is not None else create_provider_table()

    def get_spec(self, model: str) -> ModelSpec:
        """Return the catalog entry for ``model`` or raise UnsupportedModelError."""
        spec = self.catalog.get(model)
        if spec is None:
            raise UnsupportedModelError(model)
        return spec

    async def send_message(
        self,
        model: str,
        messages: Sequence[MessageLike],
        credentials: Mapping[str, Optional[str]],
        options: Optional[Mapping[str, Any]] = None,
    ) -> LLMResult:
        """
        Send a conversation (or an image prompt) to the provider behind ``model``.

        Args:
            model: Public model id from the catalog
            messages: Conversation messages, oldest first
            credentials: Provider name -> API key
            options: String-valued settings (max_tokens, temperature, image_* ...)

        Returns:
            LLMResult normalized across providers

        Raises:
            UnsupportedModelError: Unknown model id (no I/O performed)
            InvalidPromptError: Image model without a trailing user message
            MissingCredentialError: No key for the model's provider
            ProviderError: Upstream call failed
        """
        spec = self.get_spec(model)
        normalized = self._normalize(messages)

        if spec.is_image:
            if not normalized or normalized[-1].role != "user":
                raise InvalidPromptError("Image generation requires a user prompt")
            # Only the prompt travels upstream for image generation
            normalized = normalized[-1:]

        handler = self._providers.get(spec.kind)
        if handler is None:
            raise UnsupportedModelError(model)

        logger.debug(f"Dispatching model={model} to handler={spec.kind}")
        return await handler.generate(
            spec,
            normalized,
            credentials.get(spec.provider),
            options or {},
        )

    async def check_api_key(self, provider: str, api_key: str) -> LLMResult:
        """
        Probe a provider with a short prompt using the given key.

        Raises:
            ValueError: If the provider has no probe model
            MissingCredentialError, ProviderError: If the key is empty or rejected
        """
        model = KEY_TEST_MODELS.get(provider)
        if model is None:
            raise ValueError(f"Unsupported provider: {provider}")
        return await self.send_message(
            model,
            [LLMMessage.text("user", KEY_TEST_PROMPT)],
            {provider: api_key},
            {"max_tokens": "50", "temperature": "0"},
        )

    def available_models(self) -> List[Dict[str, str]]:
        """List models as ``{id, name, provider, type}``."""
        return [
            {"id": spec.id, "name": spec.name, "provider": spec.provider, "type": spec.type}
            for spec in self.catalog.values()
        ]

    def format_model_name(self, model: str) -> str:
        spec = self.catalog.get(model)
        return spec.name if spec else model

    def validate_model(self, model: Optional[str]) -> bool:
        return bool(model) and model in self.catalog

    def get_model_type(self, model: str) -> Optional[str]:
        spec = self.catalog.get(model)
        return spec.type if spec else None

    def is_image_model(self, model: str) -> bool:
        spec = self.catalog.get(model)
        return spec is not None and spec.is_image

    @staticmethod
    def _normalize(messages: Sequence[MessageLike]) -> List[LLMMessage]:
        return [m if isinstance(m, LLMMessage) else LLMMessage.from_dict(m) for m in messages]


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Return the process-wide LLMService, creating it on first use."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
