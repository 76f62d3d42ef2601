"""
Anthropic Messages API provider.
System prompts travel in a separate ``system`` field rather than as a message.
"""

from typing import Any, Dict, List, Mapping

from .base import LLMMessage, LLMProvider, LLMResult, parse_float_option, parse_int_option
from .catalog import TEXT, ModelSpec

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.7


class AnthropicProvider(LLMProvider):
    """Handler for Claude text models."""

    provider_name = "anthropic"
    error_prefix = "Anthropic API Error"
    timeout = 30.0

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_payload(
        self,
        spec: ModelSpec,
        messages: List[LLMMessage],
        options: Mapping[str, Any],
    ) -> Dict[str, Any]:
        system_message = next((m for m in messages if m.role == "system"), None)
        conversation = [m for m in messages if m.role != "system"]

        payload: Dict[str, Any] = {
            "model": spec.wire_model,
            "max_tokens": parse_int_option(options, "max_tokens", DEFAULT_MAX_TOKENS),
            "temperature": parse_float_option(options, "temperature", DEFAULT_TEMPERATURE),
            "messages": [
                {
                    "role": "assistant" if m.role == "assistant" else "user",
                    "content": m.content,
                }
                for m in conversation
            ],
        }
        if system_message is not None:
            payload["system"] = system_message.content
        return payload

    def parse_response(
        self,
        spec: ModelSpec,
        payload: Dict[str, Any],
        data: Dict[str, Any],
    ) -> LLMResult:
        return LLMResult(
            content=data["content"][0]["text"],
            type=TEXT,
            model=spec.wire_model,
            provider=self.provider_name,
            usage=data.get("usage"),
            raw=data,
        )
