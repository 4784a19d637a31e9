"""Tag model and the prompt/tag association."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.prompt import Prompt


class Tag(Base, TimestampMixin):
    """
    Tag model - global tags shared by all prompts.

    usage_count is the number of prompts currently carrying the tag. It is
    maintained with in-database arithmetic by services.tag_service whenever a
    PromptTag row is created or deleted.
    """

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0", index=True,
    )

    prompt_links: Mapped[list["PromptTag"]] = relationship(back_populates="tag")


# Names are unique regardless of case ("Python" and "python" collide)
Index("uq_tags_name_lower", func.lower(Tag.name), unique=True)


class PromptTag(Base):
    """Association of one prompt with one tag."""

    __tablename__ = "prompt_tags"
    __table_args__ = (
        UniqueConstraint("prompt_id", "tag_id", name="uq_prompt_tags_prompt_id_tag_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    prompt_id: Mapped[int] = mapped_column(
        ForeignKey("prompts.id", ondelete="CASCADE"),
        index=True,
    )
    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    prompt: Mapped["Prompt"] = relationship(back_populates="tag_links")
    tag: Mapped[Tag] = relationship(back_populates="prompt_links")


# Plain table used by the read-only Prompt.tags relationship
prompt_tags = PromptTag.__table__
