"""
OpenAI providers: Chat Completions for text models, Images API for DALL-E.
"""

import logging
from typing import Any, Dict, List, Mapping

from .base import LLMMessage, LLMProvider, LLMResult, parse_float_option, parse_int_option
from .catalog import IMAGE, TEXT, ModelSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_IMAGE_SIZE = "512x512"
DEFAULT_IMAGE_QUALITY = "standard"
DEFAULT_IMAGE_STYLE = "natural"


class _OpenAIAuthMixin:
    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }


class OpenAIChatProvider(_OpenAIAuthMixin, LLMProvider):
    """Handler for OpenAI chat/completions text models."""

    provider_name = "openai"
    error_prefix = "OpenAI API Error"
    timeout = 30.0

    def build_payload(
        self,
        spec: ModelSpec,
        messages: List[LLMMessage],
        options: Mapping[str, Any],
    ) -> Dict[str, Any]:
        return {
            "model": spec.wire_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": parse_int_option(options, "max_tokens", DEFAULT_MAX_TOKENS),
            "temperature": parse_float_option(options, "temperature", DEFAULT_TEMPERATURE),
        }

    def parse_response(
        self,
        spec: ModelSpec,
        payload: Dict[str, Any],
        data: Dict[str, Any],
    ) -> LLMResult:
        completion = data["choices"][0]["message"]
        return LLMResult(
            content=completion["content"],
            type=TEXT,
            model=spec.wire_model,
            provider=self.provider_name,
            usage=data.get("usage"),
            raw=data,
        )


class OpenAIImageProvider(_OpenAIAuthMixin, LLMProvider):
    """
    Handler for the OpenAI Images API.
    Requests exactly one image; the prompt is the content of the last message.
    """

    provider_name = "openai"
    error_prefix = "Image generation failed"
    timeout = 60.0

    def resolve_image_options(self, spec: ModelSpec, options: Mapping[str, Any]) -> Dict[str, str]:
        """
        Resolve size, and for the premium model quality and style.

        Non-premium models get no ``quality``/``style`` keys at all.
        """
        resolved = {
            "size": options.get("image_size") or spec.default_image_size or DEFAULT_IMAGE_SIZE,
        }
        if spec.supports_style_options:
            resolved["quality"] = options.get("image_quality") or DEFAULT_IMAGE_QUALITY
            resolved["style"] = options.get("image_style") or DEFAULT_IMAGE_STYLE
        return resolved

    def build_payload(
        self,
        spec: ModelSpec,
        messages: List[LLMMessage],
        options: Mapping[str, Any],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": spec.wire_model,
            "prompt": messages[-1].content,
            "n": 1,
        }
        payload.update(self.resolve_image_options(spec, options))
        logger.info(f"Generating image with {spec.id}: {payload['prompt'][:50]}")
        return payload

    def parse_response(
        self,
        spec: ModelSpec,
        payload: Dict[str, Any],
        data: Dict[str, Any],
    ) -> LLMResult:
        image = data["data"][0]
        image_options = {k: payload[k] for k in ("size", "quality", "style") if k in payload}
        return LLMResult(
            content=image["url"],
            type=IMAGE,
            model=spec.id,
            provider=self.provider_name,
            prompt=payload["prompt"],
            revised_prompt=image.get("revised_prompt"),
            image_options=image_options,
            raw=data,
        )
