"""Application configuration"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    WHY: Settings are read once at process start and handed to the token
    service, database engine and email service through create_app() and
    FastAPI dependencies, so nothing reads the environment per request.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "TaskSetu API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 10080  # 7 days
    BCRYPT_ROUNDS: int = 12

    # Token lifetimes
    # WHY: One window per token type. Every code path that issues a token
    # reads these values, so invite and reset expiry cannot drift apart.
    INVITE_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 24

    # Tenants
    DEFAULT_MAX_USERS: int = 10

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # URLs
    FRONTEND_URL: str = "http://localhost:3000"

    # Redis (rate limiting)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True

    # Email
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "TaskSetu <noreply@tasksetu.com>"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        """SQLite (tests, local runs) does not accept pool sizing arguments."""
        return self.async_database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """
    Build the process-wide settings object once.

    WHY: lru_cache gives a single construction point; create_app() calls this
    and stores the result on app.state, tests can pass their own Settings.
    """
    return Settings()
