"""Prompts CRUD endpoints."""
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_user,
    get_current_user_optional,
    get_storage,
)
from models.prompt import Visibility
from models.user import User
from schemas.attachment import AttachmentResponse
from schemas.prompt import (
    PromptCreate,
    PromptDetailResponse,
    PromptListResponse,
    PromptResponse,
    PromptUpdate,
    PromptVersionResponse,
    RestoreVersionRequest,
    UsageResponse,
)
from services import attachment_service
from services.authorization import PromptAction, authorize
from services.prompt_service import prompt_service
from services.storage import BlobStorage
from services.version_service import version_service

router = APIRouter(prefix="/prompts", tags=["prompts"])


@router.get("/", response_model=PromptListResponse)
async def list_prompts(
    q: str | None = Query(
        default=None,
        description="Search query (matches title, description, content)",
    ),
    category: str | None = Query(default=None, description="Filter by category"),
    user_id: int | None = Query(default=None, description="Filter by owner"),
    visibility: Visibility | None = Query(default=None, description="Filter by visibility"),
    sort: Literal["recent", "popular"] = Query(
        default="recent",
        description="'recent' (newest first) or 'popular' (most used, then most liked)",
    ),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=20, ge=1, le=100, description="Pagination limit"),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_async_session),
) -> PromptListResponse:
    """
    List prompts the viewer may see.

    Anonymous viewers see public prompts; signed-in viewers also see their own
    and team prompts; admins see everything. Filters narrow that set further.
    """
    prompts, total = await prompt_service.search(
        db,
        current_user,
        category=category,
        user_id=user_id,
        visibility=visibility,
        query=q,
        sort=sort,
        offset=offset,
        limit=limit,
    )
    return PromptListResponse(
        items=[PromptResponse.from_prompt(p) for p in prompts],
        total=total,
        offset=offset,
        limit=limit,
        has_more=offset + len(prompts) < total,
    )


@router.post("/", response_model=PromptResponse, status_code=201)
async def create_prompt(
    data: PromptCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """Create a new prompt owned by the current user."""
    prompt = await prompt_service.create(db, current_user, data)
    return PromptResponse.from_prompt(prompt)


@router.get("/{id_or_slug}", response_model=PromptDetailResponse)
async def get_prompt(
    id_or_slug: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_async_session),
) -> PromptDetailResponse:
    """Get a prompt by id or slug, including its version list."""
    prompt = await prompt_service.get(db, id_or_slug, with_versions=True)
    authorize(current_user, PromptAction.SHOW, prompt)
    return PromptDetailResponse.from_prompt(prompt)


@router.patch("/{id_or_slug}", response_model=PromptResponse)
async def update_prompt(
    id_or_slug: str,
    data: PromptUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """
    Update a prompt.

    Changing the content records a version holding the previous content;
    `change_description` is stored on that version.
    """
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.UPDATE, prompt)
    prompt = await prompt_service.update(db, prompt, data, current_user)
    return PromptResponse.from_prompt(prompt)


@router.delete("/{id_or_slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prompt(
    id_or_slug: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_storage),
) -> None:
    """Delete a prompt with its versions, tag associations and attachments."""
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.DESTROY, prompt)
    await prompt_service.delete(db, storage, prompt)


@router.get("/{id_or_slug}/versions", response_model=list[PromptVersionResponse])
async def list_versions(
    id_or_slug: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_async_session),
) -> list[PromptVersionResponse]:
    """List a prompt's versions, newest first, with content snapshots."""
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.VERSIONS, prompt)
    versions = await version_service.list_versions(db, prompt)
    return [PromptVersionResponse.model_validate(v) for v in versions]


@router.post("/{id_or_slug}/restore-version", response_model=PromptResponse)
async def restore_version(
    id_or_slug: str,
    data: RestoreVersionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """
    Restore a prompt's content from one of its versions.

    The content in place before the restore is itself recorded as a new version.
    """
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.RESTORE_VERSION, prompt)
    prompt = await prompt_service.restore_version(db, prompt, data.version_id, current_user)
    return PromptResponse.from_prompt(prompt)


@router.post("/{id_or_slug}/duplicate", response_model=PromptResponse, status_code=201)
async def duplicate_prompt(
    id_or_slug: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """Copy a viewable prompt into a new private prompt owned by the current user."""
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.DUPLICATE, prompt)
    copy = await prompt_service.duplicate(db, prompt, current_user)
    return PromptResponse.from_prompt(copy)


@router.post("/{id_or_slug}/increment-usage", response_model=UsageResponse)
async def increment_usage(
    id_or_slug: str,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_async_session),
) -> UsageResponse:
    """Record that a prompt was used (copied into an AI tool)."""
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.USE, prompt)
    prompt = await prompt_service.increment_usage(db, prompt)
    return UsageResponse(id=prompt.id, usage_count=prompt.usage_count)


@router.post(
    "/{id_or_slug}/attachments",
    response_model=list[AttachmentResponse],
    status_code=201,
)
async def upload_attachments(
    id_or_slug: str,
    files: list[UploadFile] = File(..., description="One or more files to attach"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_storage),
) -> list[AttachmentResponse]:
    """
    Attach uploaded files to a prompt.

    Returns 422 without storing anything if any file is empty or too large.
    """
    prompt = await prompt_service.get(db, id_or_slug)
    authorize(current_user, PromptAction.ATTACH, prompt)
    uploads = [
        (upload.filename or "upload", upload.content_type, await upload.read())
        for upload in files
    ]
    attachments = await attachment_service.attach_files(db, storage, prompt, uploads)
    return [AttachmentResponse.from_attachment(a) for a in attachments]
