"""FastAPI dependencies for injection."""
from core.auth import get_current_user, get_current_user_optional
from core.config import get_settings
from db.session import get_async_session
from services.storage import BlobStorage, get_blob_storage


def get_storage() -> BlobStorage:
    """Return the blob storage attachments are written to."""
    return get_blob_storage()


__all__ = [
    "get_async_session",
    "get_current_user",
    "get_current_user_optional",
    "get_settings",
    "get_storage",
]
