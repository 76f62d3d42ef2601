"""
Error taxonomy shared by the provider adapter, the stores and the API layer.

Every error carries the HTTP status and the ``type`` string the API renders,
so route handlers never need to translate exceptions themselves.
"""

from typing import Optional


class ChatBrokerError(Exception):
    """Base class for all typed failures raised by the broker."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedModelError(ChatBrokerError):
    """The requested model id is not in the catalog."""

    status_code = 400
    error_type = "unsupported_model"

    def __init__(self, model: str):
        super().__init__(f"Unsupported model: {model}")
        self.model = model


class InvalidPromptError(ChatBrokerError):
    """The request carries no usable prompt."""

    status_code = 400
    error_type = "invalid_prompt"


class InvalidRequestError(ChatBrokerError):
    """A request body or query parameter is missing or not acceptable."""

    status_code = 400
    error_type = "invalid_request"


class MissingCredentialError(ChatBrokerError):
    """No API key is configured for the provider a model needs."""

    status_code = 400
    error_type = "api_key_error"

    def __init__(self, provider: str):
        super().__init__(f"{_PROVIDER_LABELS.get(provider, provider)} API key not configured")
        self.provider = provider


class ProviderError(ChatBrokerError):
    """The upstream provider call failed; ``message`` keeps the upstream reason."""

    status_code = 502
    error_type = "llm_error"

    def __init__(self, provider: str, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.upstream_status = upstream_status


class NotFoundError(ChatBrokerError):
    """A referenced session, message or setting does not exist."""

    status_code = 404
    error_type = "not_found"


class PersistenceError(ChatBrokerError):
    """A storage operation failed and was rolled back."""

    status_code = 500
    error_type = "persistence_error"


_PROVIDER_LABELS = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
}
