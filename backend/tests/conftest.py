"""
Test configuration and fixtures.

Uses a throwaway SQLite file by default. Set TEST_DATABASE_URL to a
postgresql+asyncpg URL to run the same suite against PostgreSQL.
"""
import os
import tempfile

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{tempfile.gettempdir()}/imagegen_test_{os.getpid()}.db",
)

# Set test environment before any imports
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENVIRONMENT"] = "test"
os.environ["TRIAL_CREDITS"] = "3"

import pytest
from typing import AsyncGenerator, Dict, List

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ai.base import ImageProvider
from app.database import create_engine_and_sessionmaker
from app.generation.errors import ProviderError, ProviderUnavailableError
from app.models.base import Base
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.generation import GenerationSubmitRequest, TaskStatusData
from app.services.credit_service import CreditService


class FakeImageProvider(ImageProvider):
    """
    In-memory provider: hands out sequential task ids and scripted statuses.
    status_outages makes the next N status calls fail as if the provider were unreachable.
    """

    name = "fake"

    def __init__(self):
        self.submitted: List[GenerationSubmitRequest] = []
        self.statuses: Dict[str, TaskStatusData] = {}
        self.fail_submit = False
        self.status_outages = 0

    async def submit(self, request: GenerationSubmitRequest) -> str:
        if self.fail_submit:
            raise ProviderError("provider unavailable")
        self.submitted.append(request)
        return f"task-{len(self.submitted)}"

    async def get_status(self, task_id: str) -> TaskStatusData:
        if self.status_outages > 0:
            self.status_outages -= 1
            raise ProviderUnavailableError("connection reset by provider")
        if task_id not in self.statuses:
            raise ProviderError(f"unknown task {task_id}")
        return self.statuses[task_id]

    def is_configured(self) -> bool:
        return True


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema and a session factory bound to it."""
    engine, factory = create_engine_and_sessionmaker(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield factory

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


async def create_user(db: AsyncSession, email: str, credits: int, provider: str = "google.com") -> User:
    user = await UserRepository.insert_user(db, User(
        email=email,
        nickname=email.split("@")[0],
        avatar_url="https://example.com/avatar.png",
        signin_type="oauth",
        signin_provider=provider,
        signin_openid=f"openid-{email}",
    ))
    await CreditService.create_user_credits(db, user.uuid, credits)
    await db.refresh(user)
    return user


@pytest.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with 10 credits."""
    return await create_user(db_session, "test@example.com", 10)


@pytest.fixture(scope="function")
async def test_user_no_credits(db_session: AsyncSession) -> User:
    """Create a test user with no credits."""
    return await create_user(db_session, "nocredits@example.com", 0)


@pytest.fixture
def make_user():
    """Factory for extra users: await make_user(db, email, credits)."""
    return create_user


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    return FakeImageProvider()


def get_test_app(db_session: AsyncSession, provider: ImageProvider, user: User = None) -> FastAPI:
    """
    Create a test FastAPI app with overridden dependencies.
    Without a user, authentication runs for real (token verification must be patched).
    """
    from app.main import app
    from app.database import get_db
    from app.auth.dependencies import get_current_user
    from app.ai.factory import get_image_provider

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_provider] = lambda: provider

    if user is not None:
        async def override_get_current_user():
            return user

        app.dependency_overrides[get_current_user] = override_get_current_user

    return app


@pytest.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    test_user: User,
    fake_provider: FakeImageProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(db_session, fake_provider, test_user)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_no_credits(
    db_session: AsyncSession,
    test_user_no_credits: User,
    fake_provider: FakeImageProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for user with no credits."""
    app = get_test_app(db_session, fake_provider, test_user_no_credits)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def anonymous_client(
    db_session: AsyncSession,
    fake_provider: FakeImageProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Client whose requests go through the real get_current_user."""
    app = get_test_app(db_session, fake_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
