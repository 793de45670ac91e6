"""
Security headers middleware.

WHY: The API is served to browsers. These headers tell the browser to
refuse framing, MIME sniffing and downgrade to plain HTTP. API responses
carry session tokens and membership data, so they are never cached.
"""

from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"

# WHY: The API only ever returns JSON, so nothing may be loaded or framed
CONTENT_SECURITY_POLICY = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"

BASE_SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
}

NO_STORE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds BASE_SECURITY_HEADERS to every response.

    Args:
        app: ASGI application
        enable_hsts: Send Strict-Transport-Security (off for plain-HTTP
            local development)
        api_prefix: Responses under this prefix also get NO_STORE_HEADERS
    """

    def __init__(self, app: ASGIApp, enable_hsts: bool = True, api_prefix: str = "/api"):
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update(BASE_SECURITY_HEADERS)
        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        if request.url.path.startswith(self.api_prefix):
            response.headers.update(NO_STORE_HEADERS)

        return response
