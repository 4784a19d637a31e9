"""Prompt model for storing shareable prompts."""
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.tag import prompt_tags

if TYPE_CHECKING:
    from models.attachment import Attachment
    from models.prompt_version import PromptVersion
    from models.tag import PromptTag, Tag
    from models.user import User


class Visibility(StrEnum):
    """Who may see a prompt."""

    PRIVATE = "private"
    PUBLIC = "public"
    # No team membership model exists yet; see services.authorization
    TEAM = "team"


class AiProvider(StrEnum):
    """Which AI provider a prompt is written for."""

    BOTH = "both"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class Prompt(Base, TimestampMixin):
    """Prompt model - titled content with tags, versions, and attachments."""

    __tablename__ = "prompts"
    __table_args__ = (
        Index("ix_prompts_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # Derived from title at creation; never regenerated afterwards
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        default=Visibility.PRIVATE.value,
        server_default=Visibility.PRIVATE.value,
    )
    category: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    ai_provider: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AiProvider.BOTH.value,
        server_default=AiProvider.BOTH.value,
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    like_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )

    user: Mapped["User"] = relationship(back_populates="prompts")
    tag_links: Mapped[list["PromptTag"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
    )
    # Read-only view over tag_links; associations are managed by services.tag_service
    tags: Mapped[list["Tag"]] = relationship(
        secondary=prompt_tags,
        viewonly=True,
        order_by="Tag.name",
    )
    versions: Mapped[list["PromptVersion"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        order_by="PromptVersion.version_number.desc()",
    )
    attachments: Mapped[list["Attachment"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        order_by="Attachment.id",
    )
