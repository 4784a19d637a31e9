"""Service layer for prompt attachments."""
import hashlib
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.hooks import after_commit, after_rollback
from models.attachment import Attachment
from models.prompt import Prompt
from services.exceptions import NotFoundError, ValidationError
from services.storage import BlobStorage

logger = logging.getLogger(__name__)


def url_for(attachment: Attachment) -> str:
    """Return the path an attachment is served from."""
    return f"/attachments/{attachment.id}"


def upload_errors(filename: str, data: bytes) -> list[str]:
    """Return the problems with one uploaded file (empty list when it is acceptable)."""
    max_bytes = get_settings().max_upload_bytes
    if not data:
        return [f"{filename} is empty"]
    if len(data) > max_bytes:
        return [f"{filename} is too large (maximum is {max_bytes:,} bytes)"]
    return []


async def attach(
    db: AsyncSession,
    storage: BlobStorage,
    prompt: Prompt,
    filename: str,
    content_type: str | None,
    data: bytes,
) -> Attachment:
    """
    Store a file and attach it to a prompt.

    Args:
        db: Database session.
        storage: Blob storage to write the bytes to.
        prompt: Prompt receiving the attachment.
        filename: Original file name as uploaded.
        content_type: MIME type reported by the client, if any.
        data: File contents.

    Returns:
        The created Attachment.

    Raises:
        ValidationError: If the file is empty or exceeds the upload limit.
    """
    errors = upload_errors(filename, data)
    if errors:
        raise ValidationError({"attachments": errors})

    key = await storage.save(data)
    # The row may never be committed; do not leave its blob behind
    after_rollback(db, lambda: storage.delete(key))
    attachment = Attachment(
        prompt_id=prompt.id,
        filename=filename or "upload",
        content_type=content_type,
        byte_size=len(data),
        checksum=hashlib.sha256(data).hexdigest(),
        storage_key=key,
    )
    db.add(attachment)
    await db.flush()
    await db.refresh(attachment)
    db.expire(prompt, ["attachments"])
    logger.info("Attached %s (%d bytes) to prompt %s", attachment.filename, len(data), prompt.id)
    return attachment


async def attach_files(
    db: AsyncSession,
    storage: BlobStorage,
    prompt: Prompt,
    files: list[tuple[str, str | None, bytes]],
) -> list[Attachment]:
    """
    Attach several files at once, all or none.

    Every file is checked before any is stored, so one bad file in a batch
    leaves nothing on disk.

    Args:
        files: (filename, content_type, data) for each upload.

    Raises:
        ValidationError: Listing every file that is empty or too large.
    """
    errors = [message for name, _, data in files for message in upload_errors(name, data)]
    if errors:
        raise ValidationError({"attachments": errors})
    return [
        await attach(db, storage, prompt, name, content_type, data)
        for name, content_type, data in files
    ]


async def get_attachment(db: AsyncSession, attachment_id: int) -> Attachment:
    """
    Get an attachment with its prompt loaded.

    Raises:
        NotFoundError: If the attachment does not exist.
    """
    result = await db.execute(
        select(Attachment).where(Attachment.id == attachment_id),
    )
    attachment = result.scalar_one_or_none()
    if attachment is None:
        raise NotFoundError("Attachment", attachment_id)
    await db.refresh(attachment, attribute_names=["prompt"])
    return attachment


async def delete_attachment(
    db: AsyncSession,
    storage: BlobStorage,
    attachment: Attachment,
) -> None:
    """Delete an attachment row; its stored blob is removed once the deletion commits."""
    key = attachment.storage_key
    prompt = await db.get(Prompt, attachment.prompt_id)
    await db.delete(attachment)
    await db.flush()
    if prompt is not None:
        db.expire(prompt, ["attachments"])
    after_commit(db, lambda: storage.delete(key))
    logger.info("Deleted attachment %s", attachment.id)


async def purge_blobs(storage: BlobStorage, keys: list[str]) -> None:
    """Delete stored blobs whose attachment rows are being removed."""
    for key in keys:
        await storage.delete(key)
