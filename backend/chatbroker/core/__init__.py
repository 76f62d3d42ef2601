"""Core module - error taxonomy and logging setup."""

from .errors import (
    ChatBrokerError,
    InvalidPromptError,
    InvalidRequestError,
    MissingCredentialError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    UnsupportedModelError,
)

__all__ = [
    'ChatBrokerError',
    'InvalidPromptError',
    'InvalidRequestError',
    'MissingCredentialError',
    'NotFoundError',
    'PersistenceError',
    'ProviderError',
    'UnsupportedModelError',
]
