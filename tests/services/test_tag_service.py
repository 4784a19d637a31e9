"""Tests for tag service layer functionality."""
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.prompt import Prompt
from models.tag import PromptTag
from models.user import User
from services import tag_service
from services.exceptions import NotFoundError, ValidationError
from tests.factories import make_tag


async def _prompt(db_session: AsyncSession, owner: User, slug: str) -> Prompt:
    prompt = Prompt(user_id=owner.id, title=slug, slug=slug, content="Some prompt content")
    db_session.add(prompt)
    await db_session.flush()
    return prompt


async def test__create_tag__strips_name_and_derives_slug(db_session: AsyncSession) -> None:
    tag = await tag_service.create_tag(db_session, "  Machine Learning ")
    assert tag.name == "Machine Learning"
    assert tag.slug == "machine-learning"
    assert tag.usage_count == 0


async def test__create_tag__name_is_unique_case_insensitively(db_session: AsyncSession) -> None:
    await tag_service.create_tag(db_session, "Python")
    with pytest.raises(ValidationError) as exc_info:
        await tag_service.create_tag(db_session, "python")
    assert exc_info.value.errors == {"name": ["Name has already been taken"]}


async def test__create_tag__slug_collision_is_rejected(db_session: AsyncSession) -> None:
    await tag_service.create_tag(db_session, "C Sharp")
    with pytest.raises(ValidationError) as exc_info:
        await tag_service.create_tag(db_session, "c-sharp")
    assert exc_info.value.errors == {"name": ["Slug has already been taken"]}


@pytest.mark.parametrize(
    ("name", "message"),
    [
        ("", "Name can't be blank"),
        ("   ", "Name can't be blank"),
        ("x" * 51, "Name is too long (maximum is 50 characters)"),
        ("!!!", "Name must contain at least one letter or digit"),
    ],
)
async def test__create_tag__invalid_names(
    db_session: AsyncSession,
    name: str,
    message: str,
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await tag_service.create_tag(db_session, name)
    assert exc_info.value.errors == {"name": [message]}


async def test__get_tag__by_id_or_slug(db_session: AsyncSession) -> None:
    tag = await make_tag(db_session, "Writing")
    assert (await tag_service.get_tag(db_session, tag.id)).id == tag.id
    assert (await tag_service.get_tag(db_session, "writing")).id == tag.id


async def test__get_tag__missing_raises_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await tag_service.get_tag(db_session, "nope")
    assert str(exc_info.value) == "Tag not found"


async def test__get_tag_by_name__ignores_case(db_session: AsyncSession) -> None:
    tag = await make_tag(db_session, "Marketing")
    found = await tag_service.get_tag_by_name(db_session, "MARKETING")
    assert found is not None
    assert found.id == tag.id


async def test__validate_tag_ids__dedupes_in_order(db_session: AsyncSession) -> None:
    a = await make_tag(db_session, "Alpha")
    b = await make_tag(db_session, "Beta")
    assert await tag_service.validate_tag_ids(db_session, [b.id, a.id, b.id]) == [b.id, a.id]


async def test__validate_tag_ids__lists_unknown_ids(db_session: AsyncSession) -> None:
    a = await make_tag(db_session, "Alpha")
    with pytest.raises(ValidationError) as exc_info:
        await tag_service.validate_tag_ids(db_session, [a.id, 998, 999])
    assert exc_info.value.errors == {"tag_ids": ["Unknown tag id(s): 998, 999"]}


async def test__set_prompt_tags__adjusts_counters_once_per_change(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    a = await make_tag(db_session, "Alpha")
    b = await make_tag(db_session, "Beta")
    first = await _prompt(db_session, test_user, "first")
    second = await _prompt(db_session, test_user, "second")

    await tag_service.set_prompt_tags(db_session, first, [a.id, b.id])
    await tag_service.set_prompt_tags(db_session, second, [a.id])
    # Re-applying the same set changes nothing
    await tag_service.set_prompt_tags(db_session, second, [a.id, a.id])
    await db_session.refresh(a)
    await db_session.refresh(b)
    assert (a.usage_count, b.usage_count) == (2, 1)

    await tag_service.set_prompt_tags(db_session, first, [])
    await db_session.refresh(a)
    await db_session.refresh(b)
    assert (a.usage_count, b.usage_count) == (1, 0)


async def test__list_tags__popular_and_alphabetical(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    zebra = await make_tag(db_session, "Zebra")
    await make_tag(db_session, "Apple")
    await make_tag(db_session, "Mango")
    prompt = await _prompt(db_session, test_user, "tagged")
    await tag_service.set_prompt_tags(db_session, prompt, [zebra.id])

    popular = await tag_service.list_tags(db_session)
    alphabetical = await tag_service.list_tags(db_session, sort="alphabetical")

    assert [t.name for t in popular] == ["Zebra", "Apple", "Mango"]
    assert [t.name for t in alphabetical] == ["Apple", "Mango", "Zebra"]


async def test__set_prompt_tags__usage_count_never_goes_below_zero(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    tag = await make_tag(db_session, "Drifted", usage_count=0)
    prompt = await _prompt(db_session, test_user, "drifted")
    # An association whose counter increment was never recorded
    db_session.add(PromptTag(prompt_id=prompt.id, tag_id=tag.id))
    await db_session.flush()

    await tag_service.set_prompt_tags(db_session, prompt, [])

    await db_session.refresh(tag)
    assert tag.usage_count == 0
    links = await db_session.execute(select(PromptTag).where(PromptTag.prompt_id == prompt.id))
    assert links.scalars().all() == []
