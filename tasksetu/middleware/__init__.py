"""
Middleware package.

WHY: Middleware provides cross-cutting concerns like security headers,
rate limiting and request context that apply to all requests.
"""

from tasksetu.middleware.security_headers import SecurityHeadersMiddleware
from tasksetu.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
    get_user_agent,
    RequestContext,
)
from tasksetu.middleware.rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    RateLimitConfig,
    RateLimitResult,
    get_rate_limiter,
    AUTH_RATE_LIMITS,
)

__all__ = [
    # Security
    "SecurityHeadersMiddleware",
    # Request context
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
    "get_user_agent",
    "RequestContext",
    # Rate limiting
    "RateLimitMiddleware",
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "get_rate_limiter",
    "AUTH_RATE_LIMITS",
]
