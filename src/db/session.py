"""Database engine and per-request sessions."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import get_settings
from db.hooks import run_after_commit, run_after_rollback


settings = get_settings()

# SQL echo follows the application log level
engine = create_async_engine(
    settings.database_url,
    echo=settings.log_level.upper() == "DEBUG",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield a session whose work is committed when the request succeeds.

    Services only flush. A prompt edit, its version snapshot and its tag
    counter changes therefore land in one transaction, and any error rolls
    all of them back together. Blob storage work queued with `db.hooks` runs
    only once the outcome is known.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            await run_after_rollback(session)
            raise
        await run_after_commit(session)


async def dispose_engine() -> None:
    """Close pooled connections at shutdown."""
    await engine.dispose()
