"""User model for storing registered users."""
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.prompt import Prompt
    from models.prompt_version import PromptVersion


class UserRole(StrEnum):
    """Role of a user; admins bypass ownership checks."""

    USER = "user"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """User model - credentials, profile and two-factor state."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    username: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.USER, server_default=UserRole.USER.value,
    )

    # Two-factor authentication
    otp_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    otp_required_for_login: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(),
    )
    # Last TOTP time step accepted; a step can only be consumed once (replay protection)
    consumed_timestep: Mapped[int | None] = mapped_column(Integer, nullable=True)

    prompts: Mapped[list["Prompt"]] = relationship(back_populates="user")
    edited_versions: Mapped[list["PromptVersion"]] = relationship(back_populates="changed_by")

    @property
    def is_admin(self) -> bool:
        """Check if the user has the admin role."""
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        """Name, else username, else the local part of the email address."""
        return self.name or self.username or self.email.split("@")[0]
