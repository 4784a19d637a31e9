"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.tag import PromptTag, Tag, prompt_tags  # Must be before prompt due to import
from models.attachment import Attachment
from models.prompt import AiProvider, Prompt, Visibility
from models.prompt_version import PromptVersion
from models.user import User, UserRole

__all__ = [
    "AiProvider",
    "Attachment",
    "Base",
    "Prompt",
    "PromptTag",
    "PromptVersion",
    "Tag",
    "TimestampMixin",
    "User",
    "UserRole",
    "Visibility",
    "prompt_tags",
]
