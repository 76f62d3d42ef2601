"""Fixed-window rate limiting for the /api routes."""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass
class ClientWindow:
    """Request count for one client in the current window."""
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    """
    In-memory fixed-window counter keyed by client IP.

    Each client gets ``max_requests`` per ``window_seconds``; the window starts
    with the client's first request and resets once it has elapsed.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._clients: Dict[str, ClientWindow] = {}
        self._lock = asyncio.Lock()

    @property
    def retry_after(self) -> int:
        """Advertised retry delay in whole seconds (the window length)."""
        return math.ceil(self.window_seconds)

    async def hit(self, client_key: str) -> bool:
        """Count one request; False when the client is over its limit."""
        async with self._lock:
            now = self._clock()
            window = self._clients.get(client_key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = ClientWindow(started_at=now)
                self._clients[client_key] = window
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True


def client_key(request: Request) -> str:
    """Client identifier: first X-Forwarded-For hop, else the peer host."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a FixedWindowRateLimiter to requests under ``path_prefix``."""

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_ms: int = 900000,
        path_prefix: str = "/api",
        limiter: Optional[FixedWindowRateLimiter] = None,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter or FixedWindowRateLimiter(max_requests, window_ms / 1000)
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        key = client_key(request)
        if not await self.limiter.hit(key):
            retry_after = self.limiter.retry_after
            logger.warning(
                "Rate limit exceeded",
                extra={"extra_fields": {
                    "client": key,
                    "path": request.url.path,
                    "retry_after": retry_after,
                }}
            )
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE, "retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
