"""
Rate limiting for the credential endpoints.

WHAT: Fixed-window request budgets per client IP for login, registration,
password reset, invitation acceptance and verification resend.

WHY: These are the endpoints an attacker hammers to guess passwords, probe
tokens or spam mailboxes.

HOW: Redis INCR + EXPIRE NX + TTL in one pipeline per request:
1. Each request increments a counter for IP+endpoint
2. The first request of a window sets the expiry; later ones leave it alone
3. Over the limit -> 429 with Retry-After set to the seconds left

Fail-open: if Redis is unavailable the request is allowed and the outage
is logged.
"""

from dataclasses import dataclass
from typing import Optional, Dict
import logging
import redis.asyncio as aioredis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from tasksetu.core.exceptions import RateLimitExceeded
from tasksetu.middleware.request_context import get_client_ip


logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)
class RateLimitConfig:
    """
    Budget for one endpoint or group of endpoints.

    Attributes:
        requests_per_window: Maximum requests allowed in the window
        window_seconds: Window length
        key_prefix: Redis key namespace (shared prefix means shared budget)
    """

    requests_per_window: int = 5
    window_seconds: int = 60
    key_prefix: str = "ratelimit"


_REGISTER_LIMIT = RateLimitConfig(
    requests_per_window=10,
    window_seconds=60,
    key_prefix="ratelimit:register",
)

# Budgets keyed by path below the API prefix
AUTH_RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "/auth/login": RateLimitConfig(
        requests_per_window=5,
        window_seconds=60,
        key_prefix="ratelimit:login",
    ),
    "/auth/register/organization": _REGISTER_LIMIT,
    "/auth/register/individual": _REGISTER_LIMIT,
    "/auth/register/join": _REGISTER_LIMIT,
    "/auth/forgot-password": RateLimitConfig(
        requests_per_window=3,
        window_seconds=60,
        key_prefix="ratelimit:forgot-password",
    ),
    "/auth/reset-password": RateLimitConfig(
        requests_per_window=5,
        window_seconds=60,
        key_prefix="ratelimit:reset-password",
    ),
    "/auth/accept-invite": RateLimitConfig(
        requests_per_window=5,
        window_seconds=60,
        key_prefix="ratelimit:accept-invite",
    ),
    "/auth/resend-verification": RateLimitConfig(
        requests_per_window=3,
        window_seconds=300,
        key_prefix="ratelimit:resend-verification",
    ),
}


@dataclass
class RateLimitResult:
    """
    Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request is under the limit
        remaining: Requests left in the window (-1 when unknown)
        reset_after: Seconds until the window resets
        limit: Maximum requests per window
    """

    allowed: bool
    remaining: int
    reset_after: int
    limit: int

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_after),
        }


# ============================================================================
# Rate Limiter Service
# ============================================================================


class RateLimiter:
    """
    Redis-backed fixed-window limiter.

    WHY: Counters in Redis are shared by every API process, and key expiry
    cleans them up without a sweeper.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        config: Optional[RateLimitConfig] = None,
    ):
        """
        Args:
            redis_client: Async Redis client
            config: Default budget when a check does not pass its own
        """
        self._redis = redis_client
        self._default_config = config or RateLimitConfig()

    @classmethod
    def from_url(cls, redis_url: str) -> "RateLimiter":
        """Build a limiter with its own Redis connection pool."""
        client = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        return cls(redis_client=client)

    @staticmethod
    def build_key(config: RateLimitConfig, identifier: str, endpoint: str) -> str:
        """
        Build the Redis key for one client and endpoint.

        Format: {prefix}:{endpoint with / replaced by :}:{identifier}
        """
        normalized_endpoint = endpoint.strip("/").replace("/", ":")
        return f"{config.key_prefix}:{normalized_endpoint}:{identifier}"

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: str,
        config: Optional[RateLimitConfig] = None,
    ) -> RateLimitResult:
        """
        Count this request and compare against the budget.

        Args:
            identifier: Client identifier (IP address)
            endpoint: Endpoint being accessed
            config: Budget to apply (defaults to the limiter's own)

        Returns:
            RateLimitResult; allowed is True whenever Redis fails
        """
        config = config or self._default_config
        key = self.build_key(config, identifier, endpoint)

        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            # Fixed window: only the request that creates the key starts the clock
            pipe.expire(key, config.window_seconds, nx=True)
            pipe.ttl(key)
            current_count, _, ttl = await pipe.execute()
        except Exception as e:
            logger.error(
                "Rate limit Redis error, allowing request: %s",
                e,
                extra={"identifier": identifier, "endpoint": endpoint},
            )
            return RateLimitResult(
                allowed=True,
                remaining=-1,
                reset_after=config.window_seconds,
                limit=config.requests_per_window,
            )

        return RateLimitResult(
            allowed=current_count <= config.requests_per_window,
            remaining=max(0, config.requests_per_window - current_count),
            reset_after=ttl if ttl and ttl > 0 else config.window_seconds,
            limit=config.requests_per_window,
        )

    async def close(self) -> None:
        await self._redis.aclose()


def get_rate_limiter(request: Request) -> Optional[RateLimiter]:
    """Limiter built by create_app(), or None when rate limiting is disabled."""
    return getattr(request.app.state, "rate_limiter", None)


# ============================================================================
# Rate Limit Middleware
# ============================================================================


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies AUTH_RATE_LIMITS before the request reaches a handler.

    Usage:
        app.add_middleware(RateLimitMiddleware, api_prefix="/api")
    """

    def __init__(self, app: ASGIApp, api_prefix: str = "/api"):
        super().__init__(app)
        self.api_prefix = api_prefix.rstrip("/")

    def _config_for(self, path: str) -> Optional[RateLimitConfig]:
        if not path.startswith(self.api_prefix):
            return None
        return AUTH_RATE_LIMITS.get(path[len(self.api_prefix):])

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        config = self._config_for(path)
        limiter = get_rate_limiter(request)

        if config is None or limiter is None:
            return await call_next(request)

        result = await limiter.check_rate_limit(get_client_ip(request), path, config)

        if not result.allowed:
            logger.warning("Rate limit exceeded on %s", path)
            exc = RateLimitExceeded(
                message=f"Rate limit exceeded. Try again in {result.reset_after} seconds.",
                retry_after=result.reset_after,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers={**result.headers, "Retry-After": str(result.reset_after)},
            )

        response = await call_next(request)
        response.headers.update(result.headers)
        return response
