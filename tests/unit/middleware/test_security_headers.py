"""
Tests for security headers middleware.

WHY: Security headers are critical for defense in depth (OWASP Top 10).
These tests ensure that all required headers are present and correctly configured.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tasksetu.middleware.security_headers import SecurityHeadersMiddleware


REQUIRED_HEADERS = [
    "Strict-Transport-Security",
    "X-Content-Type-Options",
    "X-Frame-Options",
    "X-XSS-Protection",
    "Content-Security-Policy",
    "Referrer-Policy",
    "Permissions-Policy",
]


class TestSecurityHeadersMiddleware:
    """Test security headers on the full application."""

    async def test_hsts_header_present(self, client: AsyncClient):
        """
        WHY: HSTS prevents SSL stripping attacks and forces HTTPS connections.
        """
        hsts = (await client.get("/health")).headers["Strict-Transport-Security"]

        assert "max-age=31536000" in hsts
        assert "includeSubDomains" in hsts
        assert "preload" in hsts

    async def test_all_security_headers_present(self, client: AsyncClient):
        response = await client.get("/health")

        for header in REQUIRED_HEADERS:
            assert header in response.headers, f"Missing security header: {header}"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]

    async def test_api_responses_are_not_cached(self, client: AsyncClient):
        """
        WHY: API responses carry session tokens and membership data.
        """
        api_response = await client.get("/api/auth/me")
        root_response = await client.get("/health")

        assert "no-store" in api_response.headers["Cache-Control"]
        assert api_response.headers["Pragma"] == "no-cache"
        assert "no-store" not in root_response.headers.get("Cache-Control", "")

    async def test_security_headers_on_error_responses(self, client: AsyncClient):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert "Strict-Transport-Security" in response.headers
        assert "Content-Security-Policy" in response.headers


class TestHstsToggle:
    @pytest.fixture
    async def plain_client(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, enable_hsts=False)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    async def test_hsts_can_be_disabled(self, plain_client):
        response = await plain_client.get("/ping")

        assert "Strict-Transport-Security" not in response.headers
        assert response.headers["X-Frame-Options"] == "DENY"
