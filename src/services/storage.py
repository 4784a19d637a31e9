"""Blob storage backends for prompt attachments."""
import logging
import secrets
from pathlib import Path
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from core.config import get_settings

logger = logging.getLogger(__name__)


class BlobStorage(Protocol):
    """Interface for storing opaque blobs under generated keys."""

    async def save(self, data: bytes) -> str:
        """Store bytes and return the key they can be retrieved with."""
        ...

    def path_for(self, key: str) -> Path:
        """Return a local filesystem path the blob can be served from."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a blob; missing blobs are ignored."""
        ...


class LocalBlobStorage:
    """
    Store blobs as files under a root directory.

    Keys are random hex strings fanned out into two-level directories
    ("ab/cd/abcd...") to keep directory sizes bounded.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, key: str) -> Path:
        """Return the file path for a key."""
        if not key or any(ch not in "0123456789abcdef" for ch in key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key[:2] / key[2:4] / key

    async def save(self, data: bytes) -> str:
        """Write bytes to a new file and return its key."""
        key = secrets.token_hex(16)
        path = self.path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await run_in_threadpool(_write)
        return key

    async def delete(self, key: str) -> None:
        """Delete the file for a key if it exists."""
        path = self.path_for(key)
        await run_in_threadpool(path.unlink, missing_ok=True)


_blob_storage: BlobStorage | None = None


def get_blob_storage() -> BlobStorage:
    """Return the configured blob storage (local filesystem by default)."""
    global _blob_storage  # noqa: PLW0603
    if _blob_storage is None:
        _blob_storage = LocalBlobStorage(get_settings().storage_dir)
        logger.info("Using local blob storage at %s", get_settings().storage_dir)
    return _blob_storage
