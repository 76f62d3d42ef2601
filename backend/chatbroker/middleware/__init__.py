"""HTTP middleware."""

from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import FixedWindowRateLimiter, RateLimitMiddleware

__all__ = ['RequestLoggingMiddleware', 'FixedWindowRateLimiter', 'RateLimitMiddleware']
