"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from db.hooks import run_after_commit, run_after_rollback  # noqa: E402
from models import Base, User, UserRole  # noqa: E402
from services.storage import LocalBlobStorage  # noqa: E402
from tests.factories import make_user  # noqa: E402

USE_POSTGRES = os.getenv("TEST_POSTGRES") == "1"


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Database URL for the test session.

    In-memory SQLite by default; a PostgreSQL container when TEST_POSTGRES=1.
    """
    if not USE_POSTGRES:
        yield "sqlite+aiosqlite://"
        return

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        yield postgres.get_connection_url()


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with a freshly created schema."""
    if database_url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        engine = create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session; the schema is dropped after each test."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_storage(tmp_path: Path) -> LocalBlobStorage:
    """Blob storage rooted in a per-test temporary directory."""
    return LocalBlobStorage(tmp_path / "blobs")


@pytest.fixture
async def client(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and blob storage overrides."""
    from api.dependencies import get_storage
    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        # The shared session is never committed; treat a successful request as one
        try:
            yield db_session
        except Exception:
            await run_after_rollback(db_session)
            raise
        await run_after_commit(db_session)

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_storage] = lambda: blob_storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A regular user who owns most prompts in tests."""
    return await make_user(db_session, "owner@example.com", name="Owner")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second regular user."""
    return await make_user(db_session, "other@example.com", name="Other")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """A user with the admin role."""
    return await make_user(db_session, "admin@example.com", role=UserRole.ADMIN, name="Admin")
