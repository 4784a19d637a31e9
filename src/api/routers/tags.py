"""Tag endpoints."""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.tag import TagCreate, TagListResponse, TagResponse
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=TagListResponse)
async def list_tags(
    sort: Literal["popular", "alphabetical"] = Query(
        default="popular",
        description="'popular' (highest usage_count first) or 'alphabetical'",
    ),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Get all tags with their usage counts.

    `usage_count` is the number of prompts currently carrying the tag.
    """
    tags = await tag_service.list_tags(db, sort=sort)
    return TagListResponse(tags=[TagResponse.model_validate(t) for t in tags])


@router.post("/", response_model=TagResponse, status_code=201)
async def create_tag(
    data: TagCreate,
    _current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Create a tag.

    Returns 422 if the name is blank, too long, or already taken (case-insensitive).
    """
    tag = await tag_service.create_tag(db, data.name)
    return TagResponse.model_validate(tag)


@router.get("/{id_or_slug}", response_model=TagResponse)
async def get_tag(
    id_or_slug: str,
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """Get a tag by id or slug."""
    tag = await tag_service.get_tag(db, id_or_slug)
    return TagResponse.model_validate(tag)
