"""Helpers for building test data."""
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import create_access_token
from models import Tag, User, UserRole
from services.user_service import hash_password

PASSWORD = "correct horse battery"


async def make_user(
    db_session: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    name: str | None = None,
) -> User:
    """Insert a user with the shared test password."""
    user = User(
        email=email,
        password_hash=hash_password(PASSWORD),
        name=name,
        role=role.value,
        otp_required_for_login=False,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


async def make_tag(db_session: AsyncSession, name: str, usage_count: int = 0) -> Tag:
    """Insert a tag directly, bypassing validation."""
    tag = Tag(name=name, slug=name.lower().replace(" ", "-"), usage_count=usage_count)
    db_session.add(tag)
    await db_session.flush()
    await db_session.refresh(tag)
    return tag


def auth_headers(user: User) -> dict[str, str]:
    """Authorization header carrying an access token for the user."""
    return {"Authorization": f"Bearer {create_access_token(user)}"}
