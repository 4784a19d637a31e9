"""Service layer for prompt CRUD operations."""
import logging
from typing import Any, Literal

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from core.config import get_settings
from db.hooks import after_commit
from models.prompt import Prompt, Visibility
from models.prompt_version import PromptVersion
from models.user import User
from schemas.prompt import PromptCreate, PromptUpdate
from services import tag_service
from services.attachment_service import purge_blobs
from services.exceptions import NotFoundError, SlugConflictError, ValidationError
from services.storage import BlobStorage
from services.utils import escape_ilike, length_errors, parameterize
from services.version_service import version_service

logger = logging.getLogger(__name__)

# Slug base used when a title has no letters or digits at all
FALLBACK_SLUG = "prompt"


def scope_visible_prompts(query: Select[tuple[Prompt]], viewer: User | None) -> Select[tuple[Prompt]]:
    """
    Restrict a prompt query to what the viewer may list.

    SQL form of services.authorization.can_view_in_listing:
    admins see everything; authenticated viewers see public, own, and team
    prompts; anonymous viewers see public prompts only.
    """
    if viewer is not None and viewer.is_admin:
        return query
    if viewer is not None:
        return query.where(
            or_(
                Prompt.visibility == Visibility.PUBLIC.value,
                Prompt.user_id == viewer.id,
                Prompt.visibility == Visibility.TEAM.value,
            ),
        )
    return query.where(Prompt.visibility == Visibility.PUBLIC.value)


class PromptService:
    """
    Prompt service with full CRUD operations.

    Owns validation, slug assignment, and the explicit side effects of writes:
    a version is recorded whenever content changes, and tag counters are
    adjusted whenever the tag set changes. Services only flush; the request's
    session commits everything together.
    """

    entity_name = "Prompt"

    # --- Helper Methods ---

    def _load_options(self, with_versions: bool = False) -> list:
        options = [
            selectinload(Prompt.user),
            selectinload(Prompt.tags),
            selectinload(Prompt.attachments),
        ]
        if with_versions:
            options.append(selectinload(Prompt.versions))
        return options

    async def _reload(
        self,
        db: AsyncSession,
        prompt_id: int,
        with_versions: bool = False,
    ) -> Prompt:
        """Re-read a prompt after a write so server-side columns and relationships are fresh."""
        result = await db.execute(
            select(Prompt)
            .options(*self._load_options(with_versions))
            .where(Prompt.id == prompt_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()

    def _validate_fields(self, values: dict[str, Any], partial: bool = False) -> dict[str, list[str]]:
        """
        Validate text fields, collecting every violation.

        Args:
            values: Field values to check.
            partial: If True, only fields present in `values` are checked (updates).

        Returns:
            Mapping of field name to messages; empty when everything is valid.
        """
        settings = get_settings()
        rules = {
            "title": ("Title", settings.min_title_length, settings.max_title_length, True),
            "content": (
                "Content", settings.min_content_length, settings.max_content_length, True,
            ),
            "description": ("Description", None, settings.max_description_length, False),
            "category": ("Category", None, settings.max_category_length, False),
        }
        errors: dict[str, list[str]] = {}
        for field, (label, minimum, maximum, required) in rules.items():
            if partial and field not in values:
                continue
            messages = length_errors(label, values.get(field), minimum, maximum, required)
            if messages:
                errors[field] = messages
        return errors

    async def _check_tag_ids(
        self,
        db: AsyncSession,
        tag_ids: list[int],
        errors: dict[str, list[str]],
    ) -> None:
        """Add a tag_ids error to `errors` if any tag id is unknown."""
        try:
            await tag_service.validate_tag_ids(db, tag_ids)
        except ValidationError as e:
            errors.update(e.errors)

    async def _slug_exists(self, db: AsyncSession, slug: str) -> bool:
        result = await db.execute(select(Prompt.id).where(Prompt.slug == slug).limit(1))
        return result.scalar_one_or_none() is not None

    async def generate_slug(self, db: AsyncSession, title: str) -> str:
        """
        Derive a unique slug from a title.

        The parameterized title is used as-is when free; otherwise "-1", "-2", …
        are appended until an unused slug is found.
        """
        base = parameterize(title) or FALLBACK_SLUG
        slug = base
        counter = 1
        while await self._slug_exists(db, slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    # --- Reads ---

    async def get(
        self,
        db: AsyncSession,
        id_or_slug: str | int,
        with_versions: bool = False,
    ) -> Prompt:
        """
        Get a prompt by id or slug.

        Numeric identifiers are tried as ids first, then as slugs, so a prompt
        titled "2024" stays reachable by its slug.

        Raises:
            NotFoundError: If neither lookup resolves.
        """
        identifier = str(id_or_slug)
        base_query = select(Prompt).options(*self._load_options(with_versions))

        prompt = None
        if identifier.isdigit():
            result = await db.execute(base_query.where(Prompt.id == int(identifier)))
            prompt = result.scalar_one_or_none()
        if prompt is None:
            result = await db.execute(base_query.where(Prompt.slug == identifier))
            prompt = result.scalar_one_or_none()
        if prompt is None:
            raise NotFoundError(self.entity_name, identifier)
        return prompt

    async def search(
        self,
        db: AsyncSession,
        viewer: User | None,
        category: str | None = None,
        user_id: int | None = None,
        visibility: Visibility | None = None,
        query: str | None = None,
        sort: Literal["recent", "popular"] = "recent",
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Prompt], int]:
        """
        List prompts visible to the viewer with filtering, sorting, and pagination.

        Args:
            db: Database session.
            viewer: The requesting user, or None when anonymous.
            category: Only prompts in this category.
            user_id: Only prompts owned by this user.
            visibility: Only prompts with this visibility (still scoped to the viewer).
            query: Case-insensitive text search across title, description, content.
            sort: "recent" (newest first) or "popular" (usage, then likes).
            offset: Pagination offset.
            limit: Pagination limit.

        Returns:
            Tuple of (list of prompts, total count).
        """
        base_query = scope_visible_prompts(
            select(Prompt).options(*self._load_options()), viewer,
        )

        if category:
            base_query = base_query.where(Prompt.category == category)
        if user_id is not None:
            base_query = base_query.where(Prompt.user_id == user_id)
        if visibility is not None:
            base_query = base_query.where(Prompt.visibility == Visibility(visibility).value)
        if query:
            pattern = f"%{escape_ilike(query)}%"
            base_query = base_query.where(
                or_(
                    Prompt.title.ilike(pattern, escape="\\"),
                    Prompt.description.ilike(pattern, escape="\\"),
                    Prompt.content.ilike(pattern, escape="\\"),
                ),
            )

        # Get total count before pagination
        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        # Apply sorting with tiebreakers
        if sort == "popular":
            base_query = base_query.order_by(
                Prompt.usage_count.desc(),
                Prompt.like_count.desc(),
                Prompt.created_at.desc(),
                Prompt.id.desc(),
            )
        else:
            base_query = base_query.order_by(Prompt.created_at.desc(), Prompt.id.desc())

        result = await db.execute(base_query.offset(offset).limit(limit))
        return list(result.scalars().all()), total

    # --- Writes ---

    async def create(
        self,
        db: AsyncSession,
        owner: User,
        data: PromptCreate,
    ) -> Prompt:
        """
        Create a new prompt for a user.

        Args:
            db: Database session.
            owner: User creating (and owning) the prompt.
            data: Prompt creation data.

        Returns:
            The created prompt with user, tags, and attachments loaded.

        Raises:
            ValidationError: If any field is invalid or a tag id is unknown.
            SlugConflictError: If a concurrent insert took the slug first.
        """
        errors = self._validate_fields(data.model_dump())
        if data.tag_ids:
            await self._check_tag_ids(db, data.tag_ids, errors)
        if errors:
            raise ValidationError(errors)

        slug = await self.generate_slug(db, data.title)
        prompt = Prompt(
            user_id=owner.id,
            title=data.title,
            slug=slug,
            content=data.content,
            description=data.description,
            visibility=data.visibility.value,
            category=data.category,
            ai_provider=data.ai_provider.value,
            usage_count=0,
            like_count=0,
        )
        db.add(prompt)

        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            if "slug" in str(e):
                raise SlugConflictError(slug) from e
            raise

        if data.tag_ids:
            await tag_service.set_prompt_tags(db, prompt, data.tag_ids)

        logger.info("Created prompt %s (%s) for user %s", prompt.id, slug, owner.id)
        return await self._reload(db, prompt.id)

    async def update(
        self,
        db: AsyncSession,
        prompt: Prompt,
        data: PromptUpdate,
        editor: User | None,
    ) -> Prompt:
        """
        Apply changes to a prompt.

        If the content changes, a version holding the previous content is
        recorded before the new content is written. Other field changes record
        nothing. The slug is never regenerated.

        Args:
            db: Database session.
            prompt: The prompt to update.
            data: Fields to change; unset fields are left alone.
            editor: User performing the change (stored on the version).

        Returns:
            The updated prompt with user, tags, and attachments loaded.

        Raises:
            ValidationError: If any supplied field is invalid or a tag id is unknown.
        """
        changes = data.model_dump(exclude_unset=True)
        tag_ids = changes.pop("tag_ids", None)
        change_description = changes.pop("change_description", None)
        for field in ("visibility", "ai_provider"):
            if field in changes and changes[field] is None:
                del changes[field]

        errors = self._validate_fields(changes, partial=True)
        if tag_ids is not None:
            await self._check_tag_ids(db, tag_ids, errors)
        if errors:
            raise ValidationError(errors)

        if "content" in changes:
            # Compare against the locked row, not the copy loaded with the request
            previous_content = await version_service.lock_content(db, prompt)
            if changes["content"] != previous_content:
                await version_service.record_version(
                    db, prompt, previous_content, editor, change_description,
                )

        for field, value in changes.items():
            setattr(prompt, field, value)
        await db.flush()

        if tag_ids is not None:
            await tag_service.set_prompt_tags(db, prompt, tag_ids)

        logger.info("Updated prompt %s (fields: %s)", prompt.id, sorted(changes))
        return await self._reload(db, prompt.id)

    async def restore_version(
        self,
        db: AsyncSession,
        prompt: Prompt,
        version_id: int,
        editor: User | None,
    ) -> Prompt:
        """
        Copy a version's content back onto the prompt.

        This is an ordinary content update, so it records a new version with
        the content that was current just before the restore.

        Raises:
            NotFoundError: If the version does not belong to this prompt.
        """
        version: PromptVersion = await version_service.get_version(db, prompt, version_id)
        logger.info("Restoring prompt %s to version %s", prompt.id, version.version_number)
        return await self.update(
            db,
            prompt,
            PromptUpdate(
                content=version.content,
                change_description=f"Restored version {version.version_number}",
            ),
            editor,
        )

    async def delete(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        prompt: Prompt,
    ) -> None:
        """
        Delete a prompt with its versions, tag associations, and attachments.

        Tag associations are removed through the tag service first so each
        tag's usage_count is decremented. Stored blobs are removed only once
        the deletion has been committed.
        """
        await db.refresh(prompt, attribute_names=["attachments"])
        blob_keys = [attachment.storage_key for attachment in prompt.attachments]
        prompt_id = prompt.id

        await tag_service.set_prompt_tags(db, prompt, [])
        await db.delete(prompt)
        await db.flush()
        if blob_keys:
            after_commit(db, lambda: purge_blobs(storage, blob_keys))
        logger.info("Deleted prompt %s", prompt_id)

    async def duplicate(
        self,
        db: AsyncSession,
        prompt: Prompt,
        owner: User,
    ) -> Prompt:
        """
        Copy a prompt into a new private prompt owned by `owner`.

        Content, description, category, provider, and tags are copied; the
        title gets a " (copy)" suffix and counters start from zero.
        """
        max_title = get_settings().max_title_length
        copy = await self.create(
            db,
            owner,
            PromptCreate(
                title=f"{prompt.title} (copy)"[:max_title],
                content=prompt.content,
                description=prompt.description,
                visibility=Visibility.PRIVATE,
                category=prompt.category,
                ai_provider=prompt.ai_provider,
                tag_ids=[tag.id for tag in prompt.tags],
            ),
        )
        logger.info("Duplicated prompt %s as %s", prompt.id, copy.id)
        return copy

    async def increment_usage(self, db: AsyncSession, prompt: Prompt) -> Prompt:
        """Atomically add one to the prompt's usage counter."""
        await db.execute(
            update(Prompt)
            .where(Prompt.id == prompt.id)
            # Counter bumps are not edits; keep updated_at as it is
            .values(usage_count=Prompt.usage_count + 1, updated_at=Prompt.updated_at),
        )
        return await self._reload(db, prompt.id)


prompt_service = PromptService()
