"""
ASGI middleware that logs each API request with its outcome.

Pure ASGI (not BaseHTTPMiddleware) so the response body can be observed
without buffering the whole response in Starlette.

Logged per request: method, path, client, status code and duration. Request
and response bodies are logged at DEBUG only, after API keys and prompts
under sensitive keys have been masked.
"""

import json
import logging
import time
import uuid
from typing import List, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

BODY_LOG_LIMIT = 2000


def _render_body(chunks: List[bytes]) -> Optional[str]:
    """Join captured chunks and mask sensitive JSON fields."""
    raw = b"".join(chunks)
    if not raw:
        return None
    text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=BODY_LOG_LIMIT)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False),
        max_length=BODY_LOG_LIMIT,
    )


def _error_type(body: Optional[str]) -> Optional[str]:
    """Pull the ``type`` of an ``{"error", "type"}`` body, if present."""
    if not body:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return None
    if isinstance(payload, dict):
        return payload.get("type")
    return None


class RequestLoggingMiddleware:
    """Logs every HTTP request outside ``exclude_paths``."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = uuid.uuid4().hex[:12]
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        client_host = client[0] if client else None

        debug = logger.isEnabledFor(logging.DEBUG)
        request_chunks: List[bytes] = []
        response_chunks: List[bytes] = []
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if debug and message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode()),
                ]
            elif message["type"] == "http.response.body" and (debug or status_code >= 400):
                response_chunks.append(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                }}
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response_body = _render_body(response_chunks)

        fields = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "client": client_host,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }
        if status_code >= 400:
            fields["error_type"] = _error_type(response_body)

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        logger.log(
            log_level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": fields},
        )

        if debug:
            logger.debug(
                f"Request {request_id} bodies",
                extra={"extra_fields": {
                    "request_id": request_id,
                    "request_body": _render_body(request_chunks),
                    "response_body": response_body,
                }}
            )
