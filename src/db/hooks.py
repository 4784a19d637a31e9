"""Work deferred until a session's transaction commits or rolls back."""
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]

_AFTER_COMMIT = "after_commit_callbacks"
_AFTER_ROLLBACK = "after_rollback_callbacks"


def after_commit(session: AsyncSession, callback: Callback) -> None:
    """Queue a callback to run once the session's work has been committed."""
    session.info.setdefault(_AFTER_COMMIT, []).append(callback)


def after_rollback(session: AsyncSession, callback: Callback) -> None:
    """Queue a callback to run if the session's work is rolled back."""
    session.info.setdefault(_AFTER_ROLLBACK, []).append(callback)


async def _run(callbacks: list[Callback], outcome: str) -> None:
    for callback in callbacks:
        # The transaction outcome is final; a failed callback must not undo it
        try:
            await callback()
        except Exception:
            logger.exception("Callback after %s failed", outcome)


async def run_after_commit(session: AsyncSession) -> None:
    """Run callbacks queued for commit and drop those queued for rollback."""
    session.info.pop(_AFTER_ROLLBACK, None)
    await _run(session.info.pop(_AFTER_COMMIT, []), "commit")


async def run_after_rollback(session: AsyncSession) -> None:
    """Run callbacks queued for rollback and drop those queued for commit."""
    session.info.pop(_AFTER_COMMIT, None)
    await _run(session.info.pop(_AFTER_ROLLBACK, []), "rollback")
