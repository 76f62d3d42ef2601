"""
LLM Provider Base - Abstract base for all provider handlers.

A handler turns one normalized call (model spec, messages, api key, options)
into one HTTP request and normalizes the reply into an ``LLMResult``.
Handlers hold no per-call state, so one instance is shared process-wide.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from ..core.errors import MissingCredentialError, ProviderError
from .catalog import ModelSpec

logger = logging.getLogger(__name__)


@dataclass
class LLMMessage:
    """A single conversation turn sent to a provider."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "LLMMessage":
        """Build a message from a ``{role, content}`` mapping."""
        return LLMMessage(role=data.get("role", "user"), content=data.get("content", ""))


@dataclass
class LLMResult:
    """Normalized response of a provider call."""
    content: str
    type: str
    model: str
    provider: str
    usage: Optional[Dict[str, Any]] = None
    prompt: Optional[str] = None
    revised_prompt: Optional[str] = None
    # Image parameters actually sent upstream (size, quality, style)
    image_options: Dict[str, str] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None

    @property
    def total_tokens(self) -> int:
        """Token usage normalized across providers (0 when unknown)."""
        if not self.usage:
            return 0
        if self.usage.get("total_tokens") is not None:
            return int(self.usage["total_tokens"])
        return int(self.usage.get("input_tokens") or 0) + int(self.usage.get("output_tokens") or 0)

    def to_dict(self) -> Dict[str, Any]:
        """Public result shape; optional keys are omitted when absent."""
        data: Dict[str, Any] = {
            "content": self.content,
            "type": self.type,
            "model": self.model,
            "provider": self.provider,
        }
        if self.usage is not None:
            data["usage"] = self.usage
        if self.prompt is not None:
            data["prompt"] = self.prompt
        if self.revised_prompt is not None:
            data["revised_prompt"] = self.revised_prompt
        return data


def parse_int_option(options: Mapping[str, Any], key: str, default: int) -> int:
    """Parse an integer setting stored as a string; fall back on bad or empty values."""
    value = options.get(key)
    if value is None or value == "":
        return default
    try:
        parsed = int(float(value))
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def parse_float_option(options: Mapping[str, Any], key: str, default: float) -> float:
    """Parse a float setting stored as a string; fall back on bad or empty values."""
    value = options.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class LLMProvider(ABC):
    """
    Abstract base class for provider handlers.

    Subclasses describe the request (payload and headers) and how to read the
    response; the base class owns the credential check, the HTTP round trip,
    timing/usage logging and the mapping of every failure to ``ProviderError``.
    """

    provider_name: str = ""
    error_prefix: str = "API Error"
    timeout: float = 30.0

    async def generate(
        self,
        spec: ModelSpec,
        messages: List[LLMMessage],
        api_key: Optional[str],
        options: Mapping[str, Any],
    ) -> LLMResult:
        """
        Perform one provider call.

        Args:
            spec: Catalog entry of the requested model
            messages: Conversation messages (the image handler uses the last one)
            api_key: Provider credential
            options: String-valued settings (max_tokens, temperature, image_size, ...)

        Returns:
            LLMResult with the normalized reply

        Raises:
            MissingCredentialError: If ``api_key`` is empty; no request is sent
            ProviderError: On transport failure, timeout, non-2xx or malformed body
        """
        if not api_key:
            raise MissingCredentialError(self.provider_name)

        payload = self.build_payload(spec, messages, options)
        data = await self._post(spec, payload, self.build_headers(api_key))

        try:
            return self.parse_response(spec, payload, data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(
                f"Malformed {self.provider_name} response: {e!r}",
                extra={"extra_fields": {"provider": self.provider_name, "model": spec.id}}
            )
            raise ProviderError(
                self.provider_name,
                f"{self.error_prefix}: malformed response from provider",
            ) from e

    @abstractmethod
    def build_payload(
        self,
        spec: ModelSpec,
        messages: List[LLMMessage],
        options: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Build the JSON request body."""

    @abstractmethod
    def build_headers(self, api_key: str) -> Dict[str, str]:
        """Build authentication and content headers."""

    @abstractmethod
    def parse_response(
        self,
        spec: ModelSpec,
        payload: Dict[str, Any],
        data: Dict[str, Any],
    ) -> LLMResult:
        """Read the decoded response body into an LLMResult."""

    async def _post(
        self,
        spec: ModelSpec,
        payload: Dict[str, Any],
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        start_time = time.time()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"LLM API call starting: provider={self.provider_name}, model={spec.wire_model}, "
                f"endpoint={spec.endpoint}, timeout={self.timeout}s"
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(spec.endpoint, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            reason, status = self._upstream_reason(e)
            self._log_failure(spec, start_time, reason)
            raise ProviderError(self.provider_name, f"{self.error_prefix}: {reason}", status) from e
        except httpx.HTTPError as e:
            # Timeouts and transport failures
            reason = str(e) or type(e).__name__
            self._log_failure(spec, start_time, reason)
            raise ProviderError(self.provider_name, f"{self.error_prefix}: {reason}") from e
        except ValueError as e:
            self._log_failure(spec, start_time, f"invalid JSON body: {e}")
            raise ProviderError(
                self.provider_name,
                f"{self.error_prefix}: malformed response from provider",
            ) from e

        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, f"{self.error_prefix}: malformed response from provider")

        usage = data.get("usage") or {}
        logger.info(
            "LLM API call completed",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": spec.id,
                "usage": usage,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }}
        )
        return data

    @staticmethod
    def _upstream_reason(error: httpx.HTTPStatusError) -> Tuple[str, Optional[int]]:
        """Extract ``error.message`` (or ``error.type``) from an upstream error body."""
        response = error.response
        status = getattr(response, "status_code", None)
        try:
            body = response.json()
        except Exception:
            body = None

        if isinstance(body, dict):
            upstream = body.get("error")
            if isinstance(upstream, dict):
                reason = upstream.get("message") or upstream.get("type")
                if reason:
                    return str(reason), status
            elif isinstance(upstream, str) and upstream:
                return upstream, status

        return str(error), status

    def _log_failure(self, spec: ModelSpec, start_time: float, reason: str) -> None:
        logger.error(
            f"LLM API call failed: {reason}",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": spec.id,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                "error": reason,
            }}
        )
