"""Tests for attachment storage and the local blob storage backend."""
import hashlib
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.hooks import run_after_commit, run_after_rollback
from models.prompt import Prompt
from models.user import User
from services import attachment_service
from services.exceptions import NotFoundError, ValidationError
from services.storage import LocalBlobStorage


@pytest.fixture
async def prompt(db_session: AsyncSession, test_user: User) -> Prompt:
    """A bare prompt to attach files to."""
    prompt = Prompt(
        user_id=test_user.id, title="With files", slug="with-files", content="Prompt body text",
    )
    db_session.add(prompt)
    await db_session.flush()
    return prompt


async def test__attach__stores_blob_and_metadata(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    data = b"example input for the prompt"
    attachment = await attachment_service.attach(
        db_session, blob_storage, prompt, "input.txt", "text/plain", data,
    )

    assert attachment.id is not None
    assert attachment.prompt_id == prompt.id
    assert attachment.byte_size == len(data)
    assert attachment.checksum == hashlib.sha256(data).hexdigest()
    assert blob_storage.path_for(attachment.storage_key).read_bytes() == data
    assert attachment_service.url_for(attachment) == f"/attachments/{attachment.id}"


async def test__attach__rejects_empty_file(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await attachment_service.attach(db_session, blob_storage, prompt, "empty.txt", None, b"")
    assert exc_info.value.errors == {"attachments": ["empty.txt is empty"]}


async def test__attach__rejects_oversized_file(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    too_big = b"x" * (get_settings().max_upload_bytes + 1)
    with pytest.raises(ValidationError) as exc_info:
        await attachment_service.attach(db_session, blob_storage, prompt, "big.bin", None, too_big)
    assert "big.bin is too large" in exc_info.value.errors["attachments"][0]
    assert not blob_storage.root.exists()


async def test__attach__blob_is_removed_when_the_transaction_rolls_back(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    attachment = await attachment_service.attach(
        db_session, blob_storage, prompt, "a.txt", "text/plain", b"a",
    )
    path = blob_storage.path_for(attachment.storage_key)
    assert path.exists()

    await db_session.rollback()
    await run_after_rollback(db_session)

    assert not path.exists()


async def test__attach_files__rejects_the_whole_batch_before_storing_anything(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    files = [
        ("good.txt", "text/plain", b"fine"),
        ("empty.txt", "text/plain", b""),
        ("big.bin", None, b"x" * (get_settings().max_upload_bytes + 1)),
    ]

    with pytest.raises(ValidationError) as exc_info:
        await attachment_service.attach_files(db_session, blob_storage, prompt, files)

    messages = exc_info.value.errors["attachments"]
    assert messages[0] == "empty.txt is empty"
    assert messages[1].startswith("big.bin is too large")
    assert len(messages) == 2
    assert not blob_storage.root.exists()


async def test__attach_files__stores_every_file(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    attachments = await attachment_service.attach_files(
        db_session,
        blob_storage,
        prompt,
        [("a.txt", "text/plain", b"a"), ("b.txt", "text/plain", b"bb")],
    )
    assert [a.filename for a in attachments] == ["a.txt", "b.txt"]
    assert [a.byte_size for a in attachments] == [1, 2]


async def test__get_attachment__loads_prompt(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    attachment = await attachment_service.attach(
        db_session, blob_storage, prompt, "a.txt", "text/plain", b"a",
    )
    found = await attachment_service.get_attachment(db_session, attachment.id)
    assert found.prompt.id == prompt.id


async def test__get_attachment__missing_raises_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await attachment_service.get_attachment(db_session, 999)


async def test__delete_attachment__removes_row_and_blob(
    db_session: AsyncSession,
    blob_storage: LocalBlobStorage,
    prompt: Prompt,
) -> None:
    attachment = await attachment_service.attach(
        db_session, blob_storage, prompt, "a.txt", "text/plain", b"a",
    )
    path = blob_storage.path_for(attachment.storage_key)
    attachment_id = attachment.id

    await attachment_service.delete_attachment(db_session, blob_storage, attachment)

    assert path.exists()
    await run_after_commit(db_session)
    assert not path.exists()
    with pytest.raises(NotFoundError):
        await attachment_service.get_attachment(db_session, attachment_id)


def test__local_blob_storage__rejects_path_traversal_keys(tmp_path: Path) -> None:
    storage = LocalBlobStorage(tmp_path)
    with pytest.raises(ValueError, match="Invalid storage key"):
        storage.path_for("../../etc/passwd")


async def test__local_blob_storage__delete_missing_key_is_a_no_op(tmp_path: Path) -> None:
    storage = LocalBlobStorage(tmp_path)
    await storage.delete("ab" * 16)
