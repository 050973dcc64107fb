"""
Pytest configuration and fixtures for tests.
Provides reusable test fixtures for database, users, and data setup.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""

import pytest  # noqa: E402
from typing import AsyncGenerator  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sortmyai.core.database import get_db  # noqa: E402
from sortmyai.core.events import ChangeFeed  # noqa: E402
from sortmyai.dependencies import get_current_user  # noqa: E402
from sortmyai.main import fastapi_app  # noqa: E402
from sortmyai.models import Base, User  # noqa: E402


# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


async def _create_user(db_session: AsyncSession, user_id: str, **fields) -> User:
    user = User(id=user_id, **fields)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession):
    """Create a test user."""
    return await _create_user(db_session, "user_a", username="alice", display_name="Alice A.")


@pytest.fixture
async def test_user_2(db_session: AsyncSession):
    """Create a second test user."""
    return await _create_user(db_session, "user_b", username="bob", display_name="Bob B.")


@pytest.fixture
async def test_user_3(db_session: AsyncSession):
    """Create a third test user (no username, display name only)."""
    return await _create_user(db_session, "user_c", display_name="Carol")


@pytest.fixture
def current_user_holder(test_user):
    """Mutable holder for the user returned by the auth override."""
    return {"user": test_user}


@pytest.fixture
def login_as(current_user_holder):
    """Switch the authenticated user for subsequent API calls."""
    def _login_as(user: User) -> None:
        current_user_holder["user"] = user
    return _login_as


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, current_user_holder) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with dependency overrides."""

    async def override_get_db():
        yield db_session

    async def override_get_current_user():
        return current_user_holder["user"]

    # Override dependencies
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    # Clear overrides after test
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def unauth_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client WITHOUT authentication override."""

    async def override_get_db():
        yield db_session

    # Only override database, not authentication
    fastapi_app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user id and optional claims."""
    from sortmyai.core.security import create_access_token

    def _auth_headers(user_id: str, **claims) -> dict:
        token = create_access_token(data={"sub": user_id, **claims})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture(autouse=True)
def change_feed(mocker):
    """Fresh change feed per test (services publish to the module-level feed)."""
    feed = ChangeFeed()
    mocker.patch("sortmyai.core.events.change_feed", feed)
    return feed


@pytest.fixture(autouse=True)
def mock_websocket_manager(mocker):
    """Mock WebSocket connection manager for all tests."""
    mock_manager = mocker.AsyncMock()
    mock_manager.broadcast_new_message = mocker.AsyncMock()

    mocker.patch("sortmyai.services.conversation_service.connection_manager", mock_manager)

    return mock_manager
