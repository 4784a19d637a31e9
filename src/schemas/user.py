"""Pydantic schemas for user and profile endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr

from models.user import UserRole


class UserSummary(BaseModel):
    """Public view of a user, embedded in prompt and version responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None
    username: str | None
    display_name: str


class UserResponse(UserSummary):
    """Full view of a user, shown to the user themselves and to admins."""

    email: str
    avatar_url: str | None
    role: UserRole
    otp_required_for_login: bool
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    """Schema for paginated user list responses."""

    items: list[UserResponse]
    total: int
    offset: int
    limit: int
    has_more: bool


class ProfileUpdate(BaseModel):
    """Schema for updating the current user's profile; omitted fields are unchanged."""

    name: str | None = None
    username: str | None = None
    email: EmailStr | None = None


class PasswordUpdate(BaseModel):
    """Schema for changing the current user's password."""

    current_password: str
    password: str
    password_confirmation: str


class RoleUpdate(BaseModel):
    """Schema for an admin changing another user's role."""

    role: UserRole
