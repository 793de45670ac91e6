"""
Request context middleware.

WHAT: Captures the request id, client IP and user agent for every request
and exposes them through a ContextVar.

WHY: Audit entries written deep inside the membership services need the
caller's IP and user agent without threading the Request object through
every call. The request id ties application log lines to one request.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """
    Request-scoped context data.

    Fields:
    - request_id: Correlation id (propagated from the client when supplied)
    - ip_address: Client's real IP (considering proxies)
    - user_agent: Client's browser/application identifier
    - path: Request path
    - method: HTTP method
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


# WHY: ContextVar gives each concurrent request its own isolated value
_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the current request context.

    Returns:
        RequestContext if within a request, None otherwise (CLI, tests)
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the real client IP address from a request.

    HOW: Checks headers in order of trust:
    1. X-Real-IP (set by nginx-style proxies)
    2. X-Forwarded-For (leftmost entry is the original client)
    3. request.client.host (direct connection IP)

    Security Note:
        These headers can be spoofed when not behind a trusted proxy. The
        rate limiter keys on this value, so production proxies must
        overwrite them.
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    """Extract the User-Agent header from a request."""
    return request.headers.get("User-Agent")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    HOW: Stores the context in request.state (for handlers) and in a
    ContextVar (for services and DAOs), echoes X-Request-ID on the response
    and logs one line per request with its duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # WHY: Reuse a caller-supplied id so traces span gateway and API
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                "%s %s -> %s (%.1f ms) request_id=%s",
                context.method,
                context.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                request_id,
            )
            return response

        finally:
            _request_context.reset(token)
