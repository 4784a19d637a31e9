"""Service layer for tag operations."""
import logging
from typing import Literal

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.prompt import Prompt
from models.tag import PromptTag, Tag
from services.exceptions import NotFoundError, ValidationError
from services.utils import length_errors, parameterize

logger = logging.getLogger(__name__)


async def get_tag_by_name(db: AsyncSession, name: str) -> Tag | None:
    """Get a tag by name, case-insensitively."""
    result = await db.execute(
        select(Tag).where(func.lower(Tag.name) == name.strip().lower()),
    )
    return result.scalar_one_or_none()


async def get_tag(db: AsyncSession, id_or_slug: str | int) -> Tag:
    """
    Get a tag by id or slug.

    Numeric identifiers are tried as ids first, then as slugs.

    Raises:
        NotFoundError: If no tag matches.
    """
    identifier = str(id_or_slug)
    tag = None
    if identifier.isdigit():
        tag = await db.get(Tag, int(identifier))
    if tag is None:
        result = await db.execute(select(Tag).where(Tag.slug == identifier))
        tag = result.scalar_one_or_none()
    if tag is None:
        raise NotFoundError("Tag", identifier)
    return tag


async def list_tags(
    db: AsyncSession,
    sort: Literal["popular", "alphabetical"] = "popular",
) -> list[Tag]:
    """List all tags, most used first or alphabetically."""
    query = select(Tag)
    if sort == "alphabetical":
        query = query.order_by(Tag.name.asc(), Tag.id.asc())
    else:
        query = query.order_by(Tag.usage_count.desc(), Tag.name.asc(), Tag.id.asc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_tag(db: AsyncSession, name: str) -> Tag:
    """
    Create a tag.

    Raises:
        ValidationError: If the name is blank, too long, or already taken
            (case-insensitively), or its slug collides with an existing tag.
    """
    settings = get_settings()
    name = (name or "").strip()
    errors = length_errors("Name", name, maximum=settings.max_tag_name_length, required=True)
    slug = parameterize(name)
    if not errors:
        if await get_tag_by_name(db, name) is not None:
            errors.append("Name has already been taken")
        elif not slug:
            errors.append("Name must contain at least one letter or digit")
        else:
            existing = await db.execute(select(Tag.id).where(Tag.slug == slug))
            if existing.scalar_one_or_none() is not None:
                errors.append("Slug has already been taken")
    if errors:
        raise ValidationError({"name": errors})

    tag = Tag(name=name, slug=slug, usage_count=0)
    db.add(tag)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        # Race: another request created the same tag between check and flush
        raise ValidationError({"name": ["Name has already been taken"]}) from e
    await db.refresh(tag)
    logger.info("Created tag %s (%s)", tag.id, tag.slug)
    return tag


async def validate_tag_ids(db: AsyncSession, tag_ids: list[int]) -> list[int]:
    """
    Check that every tag id exists, returning the de-duplicated ids in order.

    Raises:
        ValidationError: If any id does not match a tag.
    """
    unique_ids = list(dict.fromkeys(tag_ids))
    if not unique_ids:
        return []
    result = await db.execute(select(Tag.id).where(Tag.id.in_(unique_ids)))
    found = set(result.scalars().all())
    missing = [tag_id for tag_id in unique_ids if tag_id not in found]
    if missing:
        raise ValidationError(
            {"tag_ids": [f"Unknown tag id(s): {', '.join(str(i) for i in missing)}"]},
        )
    return unique_ids


async def _increment_usage(db: AsyncSession, tag_ids: list[int]) -> None:
    if tag_ids:
        await db.execute(
            update(Tag)
            .where(Tag.id.in_(tag_ids))
            .values(usage_count=Tag.usage_count + 1),
        )


async def _decrement_usage(db: AsyncSession, tag_ids: list[int]) -> None:
    # usage_count never goes below zero
    if tag_ids:
        await db.execute(
            update(Tag)
            .where(Tag.id.in_(tag_ids), Tag.usage_count > 0)
            .values(usage_count=Tag.usage_count - 1),
        )


async def set_prompt_tags(
    db: AsyncSession,
    prompt: Prompt,
    tag_ids: list[int],
) -> None:
    """
    Replace a prompt's tag set.

    Associations not present in `tag_ids` are deleted and new ones inserted;
    each removal decrements that tag's usage_count by exactly one and each
    addition increments it by one. Runs inside the caller's transaction.

    Args:
        db: Database session.
        prompt: The prompt to retag (must be flushed, i.e. have an id).
        tag_ids: The complete new set of tag ids.

    Raises:
        ValidationError: If any tag id does not exist.
    """
    wanted = await validate_tag_ids(db, tag_ids)

    result = await db.execute(
        select(PromptTag.tag_id).where(PromptTag.prompt_id == prompt.id),
    )
    current = set(result.scalars().all())

    to_remove = [tag_id for tag_id in current if tag_id not in wanted]
    to_add = [tag_id for tag_id in wanted if tag_id not in current]

    if to_remove:
        await db.execute(
            delete(PromptTag).where(
                PromptTag.prompt_id == prompt.id,
                PromptTag.tag_id.in_(to_remove),
            ),
        )
        await _decrement_usage(db, to_remove)

    if to_add:
        db.add_all([PromptTag(prompt_id=prompt.id, tag_id=tag_id) for tag_id in to_add])
        await db.flush()
        await _increment_usage(db, to_add)

    if to_remove or to_add:
        logger.info(
            "Retagged prompt %s: +%s -%s", prompt.id, sorted(to_add), sorted(to_remove),
        )
