"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# Settings require these; set them before any tasksetu import reads the environment
os.environ.setdefault("JWT_SECRET", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from typing import AsyncGenerator, Callable, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from httpx import AsyncClient, ASGITransport

from tasksetu.core.auth import TokenService, configure_password_hashing
from tasksetu.core.config import Settings
from tasksetu.db.session import build_engine, build_session_factory, get_db
from tasksetu.main import create_app
from tasksetu.models import Base, User
from tasksetu.services.email import EmailService, MockEmailProvider
from tests.factories import OrganizationFactory, UserFactory


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings for one test.

    WHY: No Redis (rate limiting off), no email API key (mock provider),
    cheap bcrypt rounds.
    """
    return Settings(
        JWT_SECRET="test-secret-key-not-for-production",
        DATABASE_URL=TEST_ASYNC_DATABASE_URL,
        BCRYPT_ROUNDS=4,
        RATE_LIMIT_ENABLED=False,
        RESEND_API_KEY=None,
        FRONTEND_URL="http://frontend.test",
        DEBUG=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(test_settings):
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation.
    """
    configure_password_hashing(test_settings.BCRYPT_ROUNDS)
    engine = build_engine(test_settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session shared by the test and its requests
    """
    async with build_session_factory(db_engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
def token_service(test_settings) -> TokenService:
    return TokenService(test_settings)


@pytest.fixture
def email_service(test_settings) -> EmailService:
    return EmailService.from_settings(test_settings)


@pytest.fixture
def app(test_settings, db_session: AsyncSession):
    """
    Application under test with get_db bound to the test session.

    WHY: Tests and requests share one session, so data created by a
    factory is visible to the request and vice versa.
    """
    application = create_app(test_settings)

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server, making tests faster and more reliable.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(token_service) -> Callable[[User], Dict[str, str]]:
    """
    Build an Authorization header for a user.

    Usage:
        response = await client.get("/api/auth/me", headers=auth_headers(user))
    """

    def _headers(user: User) -> Dict[str, str]:
        token = token_service.issue_session_token(
            user_id=user.id,
            email=user.email,
            role=user.role.value,
            org_id=user.org_id,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    """
    Create a test organization.

    WHY: Most tests need a tenant for membership and isolation checks.
    """
    return await OrganizationFactory.create(db_session, name="Acme Corp", slug="acme-corp")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession, test_org):
    """Active, verified org admin of test_org."""
    return await UserFactory.create_admin(db_session, org=test_org, email="admin@acme.com")


@pytest_asyncio.fixture
async def test_employee(db_session: AsyncSession, test_org):
    """Active, verified employee of test_org."""
    return await UserFactory.create(db_session, org=test_org, email="employee@acme.com")


@pytest.fixture(autouse=True)
def use_mock_email_provider():
    """
    Start every test with an empty mock outbox.

    WHY: test_settings carries no RESEND_API_KEY, so every EmailService
    built from it uses MockEmailProvider, which records sent messages on
    the class.
    """
    MockEmailProvider.clear_sent_emails()
    yield
    MockEmailProvider.clear_sent_emails()
