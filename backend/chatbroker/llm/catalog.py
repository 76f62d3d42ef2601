"""
Model catalog - immutable table mapping public model ids to provider settings.

Adding a model means adding an entry here; adding a provider means adding an
entry plus one handler registered under a new ``kind`` in ``factory.py``.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

TEXT = "text"
IMAGE = "image"

OPENAI_CHAT = "openai_chat"
OPENAI_IMAGE = "openai_image"
ANTHROPIC_MESSAGES = "anthropic_messages"

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"


@dataclass(frozen=True)
class ModelSpec:
    """Static configuration of one public model id."""
    id: str
    name: str  # display name
    provider: str  # "openai" or "anthropic"
    endpoint: str
    wire_model: str  # model name sent upstream
    type: str  # TEXT or IMAGE
    kind: str  # handler key
    default_image_size: Optional[str] = None
    # quality/style are only accepted by the premium image model
    supports_style_options: bool = False

    @property
    def is_image(self) -> bool:
        return self.type == IMAGE


_MODELS = (
    ModelSpec("gpt-3.5-turbo", "GPT-3.5 Turbo", "openai", OPENAI_CHAT_URL,
              "gpt-3.5-turbo", TEXT, OPENAI_CHAT),
    ModelSpec("gpt-4", "GPT-4", "openai", OPENAI_CHAT_URL,
              "gpt-4", TEXT, OPENAI_CHAT),
    ModelSpec("gpt-4-turbo-preview", "GPT-4 Turbo", "openai", OPENAI_CHAT_URL,
              "gpt-4-turbo-preview", TEXT, OPENAI_CHAT),
    ModelSpec("dall-e-3", "DALL-E 3", "openai", OPENAI_IMAGES_URL,
              "dall-e-3", IMAGE, OPENAI_IMAGE,
              default_image_size="1024x1024", supports_style_options=True),
    ModelSpec("dall-e-2", "DALL-E 2", "openai", OPENAI_IMAGES_URL,
              "dall-e-2", IMAGE, OPENAI_IMAGE,
              default_image_size="512x512"),
    ModelSpec("claude-3-sonnet", "Claude 3 Sonnet", "anthropic", ANTHROPIC_MESSAGES_URL,
              "claude-3-sonnet-20240229", TEXT, ANTHROPIC_MESSAGES),
    ModelSpec("claude-3-opus", "Claude 3 Opus", "anthropic", ANTHROPIC_MESSAGES_URL,
              "claude-3-opus-20240229", TEXT, ANTHROPIC_MESSAGES),
    ModelSpec("claude-3-haiku", "Claude 3 Haiku", "anthropic", ANTHROPIC_MESSAGES_URL,
              "claude-3-haiku-20240307", TEXT, ANTHROPIC_MESSAGES),
)

MODEL_CATALOG: Mapping[str, ModelSpec] = MappingProxyType({m.id: m for m in _MODELS})

# Model probed by the API key test for each provider
KEY_TEST_MODELS: Mapping[str, str] = MappingProxyType({
    "openai": "gpt-3.5-turbo",
    "anthropic": "claude-3-haiku",
})
