"""PromptVersion model for the append-only content history of a prompt."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.prompt import Prompt
    from models.user import User


class PromptVersion(Base):
    """
    PromptVersion model - one row per content change of a prompt.

    Version semantics:
    - Prompt.content is always the live/current content
    - Creating a prompt writes no version row
    - Each content update writes a row holding the content *before* the update
    - version_number is contiguous per prompt, starting at 1
    """

    __tablename__ = "prompt_versions"
    __table_args__ = (
        # Prevents duplicate version numbers from concurrent writers
        UniqueConstraint(
            "prompt_id", "version_number", name="uq_prompt_versions_prompt_id_version_number",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    prompt_id: Mapped[int] = mapped_column(
        ForeignKey("prompts.id", ondelete="CASCADE"),
        index=True,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    change_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Only created_at - version records are immutable
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    prompt: Mapped["Prompt"] = relationship(back_populates="versions")
    changed_by: Mapped["User"] = relationship(back_populates="edited_versions")
