"""Attachment download and deletion endpoints."""
from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_user,
    get_current_user_optional,
    get_storage,
)
from models.user import User
from services import attachment_service
from services.authorization import PromptAction, authorize
from services.exceptions import NotFoundError
from services.storage import BlobStorage

router = APIRouter(prefix="/attachments", tags=["attachments"])


@router.get("/{attachment_id}")
async def download_attachment(
    attachment_id: int,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_storage),
) -> FileResponse:
    """Download an attachment; anyone who may see its prompt may download it."""
    attachment = await attachment_service.get_attachment(db, attachment_id)
    authorize(current_user, PromptAction.SHOW, attachment.prompt)
    path = storage.path_for(attachment.storage_key)
    if not path.is_file():
        raise NotFoundError("Attachment", attachment_id)
    return FileResponse(
        path,
        media_type=attachment.content_type or "application/octet-stream",
        filename=attachment.filename,
    )


@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_storage),
) -> None:
    """Delete an attachment; requires permission to update its prompt."""
    attachment = await attachment_service.get_attachment(db, attachment_id)
    authorize(current_user, PromptAction.UPDATE, attachment.prompt)
    await attachment_service.delete_attachment(db, storage, attachment)
