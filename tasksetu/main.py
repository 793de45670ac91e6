"""
Main FastAPI application.

WHY: This is the entry point for the application. create_app() builds every
process-wide collaborator once (settings, database engine, token service,
email service, rate limiter), stores them on app.state and wires the
middleware, routes and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tasksetu.api import auth, organizations, projects, super_admin, tasks
from tasksetu.core.auth import TokenService, configure_password_hashing
from tasksetu.core.config import Settings, get_settings
from tasksetu.core.exception_handlers import register_exception_handlers
from tasksetu.db.session import build_engine, build_session_factory
from tasksetu.middleware import (
    RateLimiter,
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from tasksetu.services.email import EmailService


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Release process-wide resources at shutdown.

    WHY: The engine's connection pool and the Redis client outlive single
    requests; disposing them lets the server exit cleanly.
    """
    logger.info("%s %s starting", app.state.settings.PROJECT_NAME, app.state.settings.VERSION)
    yield
    if app.state.rate_limiter is not None:
        await app.state.rate_limiter.close()
    await app.state.engine.dispose()
    logger.info("Shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed.

    Args:
        settings: Settings to use (defaults to the cached environment settings)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_password_hashing(settings.BCRYPT_ROUNDS)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Multi-tenant task management API",
        version=settings.VERSION,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    # Application-scoped collaborators
    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = TokenService(settings)
    app.state.email_service = EmailService.from_settings(settings)
    app.state.rate_limiter = (
        RateLimiter.from_url(settings.REDIS_URL) if settings.RATE_LIMIT_ENABLED else None
    )

    # Register exception handlers
    # WHY: Every error leaves the API as {"error", "message", "status_code", "details"}
    register_exception_handlers(app)

    # Configure Request Context Middleware
    # WHY: Captures client IP, user agent, and request ID for audit logging.
    app.add_middleware(RequestContextMiddleware)

    # Configure Rate Limit Middleware
    # WHY: Protects authentication endpoints from brute-force and credential
    # stuffing. Fails open when Redis is unavailable.
    app.add_middleware(RateLimitMiddleware, api_prefix=settings.API_PREFIX)

    # Configure Security Headers
    # WHY: HSTS is skipped in DEBUG so local http:// runs are not pinned to https.
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=not settings.DEBUG,
        api_prefix=settings.API_PREFIX,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    # WHY: Load balancers and monitoring tools need a simple endpoint
    # to verify the service is running.
    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        return {"status": "healthy", "version": settings.VERSION}

    @app.get("/", tags=["root"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": f"{settings.API_PREFIX}/docs",
        }

    # Register API routers
    for module in (auth, organizations, super_admin, projects, tasks):
        app.include_router(module.router, prefix=settings.API_PREFIX)

    return app


def main() -> None:
    """Console entry point: run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tasksetu.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
