"""Service layer for the prompt version log."""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.prompt import Prompt
from models.prompt_version import PromptVersion
from models.user import User
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_DESCRIPTION = "Updated prompt content"


class VersionService:
    """
    Append-only history of a prompt's content.

    Versions are written explicitly by the prompt service when content changes,
    inside the same unit of work as the content update itself.
    """

    async def lock_content(self, db: AsyncSession, prompt: Prompt) -> str:
        """
        Lock the prompt row and return its content as stored in the database.

        Concurrent editors serialize on this lock, so each one snapshots the
        content the previous editor committed rather than the copy it loaded
        before waiting.
        """
        result = await db.execute(
            select(Prompt.content).where(Prompt.id == prompt.id).with_for_update(),
        )
        return result.scalar_one()

    async def next_version_number(self, db: AsyncSession, prompt_id: int) -> int:
        """Return max(version_number) + 1 for the prompt (1 when there is no history)."""
        result = await db.execute(
            select(func.coalesce(func.max(PromptVersion.version_number), 0)).where(
                PromptVersion.prompt_id == prompt_id,
            ),
        )
        return (result.scalar() or 0) + 1

    async def record_version(
        self,
        db: AsyncSession,
        prompt: Prompt,
        previous_content: str,
        editor: User | None,
        change_description: str | None = None,
    ) -> PromptVersion:
        """
        Append a version snapshotting the content the prompt had before an update.

        Args:
            db: Database session.
            prompt: The prompt being updated.
            previous_content: Content before the update (what the version stores),
                as returned by lock_content.
            editor: User performing the update, if known.
            change_description: Free-text note; defaults to "Updated prompt content".

        Returns:
            The created PromptVersion.
        """
        # Re-taking a lock this transaction already holds does not block
        await self.lock_content(db, prompt)
        version = PromptVersion(
            prompt_id=prompt.id,
            version_number=await self.next_version_number(db, prompt.id),
            content=previous_content,
            changed_by_id=editor.id if editor is not None else None,
            change_description=change_description or DEFAULT_CHANGE_DESCRIPTION,
        )
        db.add(version)
        await db.flush()
        # A previously loaded prompt.versions collection no longer holds every row
        db.expire(prompt, ["versions"])
        logger.info(
            "Recorded version %s of prompt %s", version.version_number, prompt.id,
        )
        return version

    async def list_versions(self, db: AsyncSession, prompt: Prompt) -> list[PromptVersion]:
        """List a prompt's versions, newest first, with their editors loaded."""
        result = await db.execute(
            select(PromptVersion)
            .options(selectinload(PromptVersion.changed_by))
            .where(PromptVersion.prompt_id == prompt.id)
            .order_by(PromptVersion.version_number.desc()),
        )
        return list(result.scalars().all())

    async def get_version(
        self,
        db: AsyncSession,
        prompt: Prompt,
        version_id: int,
    ) -> PromptVersion:
        """
        Get one version of a prompt.

        Raises:
            NotFoundError: If the version does not exist or belongs to another prompt.
        """
        result = await db.execute(
            select(PromptVersion).where(
                PromptVersion.id == version_id,
                PromptVersion.prompt_id == prompt.id,
            ),
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFoundError("Version", version_id)
        return version


version_service = VersionService()
