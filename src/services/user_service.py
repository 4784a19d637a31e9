"""Service layer for user accounts: sign-up, credentials, and profile."""
import logging

from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.prompt import Prompt
from models.user import User, UserRole
from schemas.auth import SignUpRequest
from schemas.user import PasswordUpdate, ProfileUpdate
from services.exceptions import NotFoundError, ValidationError
from services.prompt_service import prompt_service
from services.storage import BlobStorage
from services.utils import length_errors

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def hash_password(password: str) -> str:
    """Hash a plaintext password for storage."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored hash."""
    return pwd_context.verify(password, password_hash)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _password_errors(password: str) -> list[str]:
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password is too short (minimum is {MIN_PASSWORD_LENGTH} characters)")
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password is too long (maximum is {MAX_PASSWORD_LENGTH} characters)")
    return errors


async def get_user(db: AsyncSession, user_id: int) -> User:
    """
    Get a user by id.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by email address, case-insensitively."""
    result = await db.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email)),
    )
    return result.scalar_one_or_none()


async def _email_taken(db: AsyncSession, email: str, exclude_id: int | None = None) -> bool:
    query = select(User.id).where(func.lower(User.email) == _normalize_email(email))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query.limit(1))).scalar_one_or_none() is not None


async def _username_taken(
    db: AsyncSession, username: str, exclude_id: int | None = None,
) -> bool:
    query = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query.limit(1))).scalar_one_or_none() is not None


async def _profile_errors(
    db: AsyncSession,
    values: dict[str, str | None],
    exclude_id: int | None = None,
) -> dict[str, list[str]]:
    """Validate name, username, and email uniqueness for sign-up and profile edits."""
    settings = get_settings()
    errors: dict[str, list[str]] = {}

    if values.get("name") is not None:
        messages = length_errors("Name", values["name"], maximum=settings.max_user_name_length)
        if messages:
            errors["name"] = messages
    if values.get("username"):
        if await _username_taken(db, values["username"], exclude_id):
            errors["username"] = ["Username has already been taken"]
    if values.get("email"):
        if await _email_taken(db, values["email"], exclude_id):
            errors["email"] = ["Email has already been taken"]
    return errors


async def sign_up(db: AsyncSession, data: SignUpRequest) -> User:
    """
    Register a new account with the default role.

    Raises:
        ValidationError: If the email or username is taken, the password
            length is out of range, or the name is too long.
    """
    errors = await _profile_errors(
        db, {"name": data.name, "username": data.username, "email": data.email},
    )
    password_messages = _password_errors(data.password)
    if password_messages:
        errors["password"] = password_messages
    if errors:
        raise ValidationError(errors)

    user = User(
        email=_normalize_email(data.email),
        password_hash=hash_password(data.password),
        name=data.name,
        username=data.username or None,
        role=UserRole.USER.value,
        otp_required_for_login=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError({"email": ["Email has already been taken"]}) from e
    await db.refresh(user)
    logger.info("Signed up user %s", user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user if the email and password match, else None."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed sign-in attempt for %s", _normalize_email(email))
        return None
    return user


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    """
    Update name, username, or email; omitted fields are unchanged.

    Raises:
        ValidationError: If a new username or email is taken or the name is too long.
    """
    changes = data.model_dump(exclude_unset=True)
    if changes.get("email") is None:
        changes.pop("email", None)

    errors = await _profile_errors(db, changes, exclude_id=user.id)
    if errors:
        raise ValidationError(errors)

    if "email" in changes:
        changes["email"] = _normalize_email(changes["email"])
    if "username" in changes:
        changes["username"] = changes["username"] or None
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    return user


async def change_password(db: AsyncSession, user: User, data: PasswordUpdate) -> User:
    """
    Replace the user's password after checking the current one.

    Raises:
        ValidationError: If the current password is wrong, the confirmation
            does not match, or the new password length is out of range.
    """
    errors: dict[str, list[str]] = {}
    if not verify_password(data.current_password, user.password_hash):
        errors["current_password"] = ["Current password is invalid"]
    password_messages = _password_errors(data.password)
    if password_messages:
        errors["password"] = password_messages
    if data.password != data.password_confirmation:
        errors["password_confirmation"] = ["Password confirmation doesn't match Password"]
    if errors:
        raise ValidationError(errors)

    user.password_hash = hash_password(data.password)
    await db.flush()
    await db.refresh(user)
    logger.info("Changed password for user %s", user.id)
    return user


async def list_users(
    db: AsyncSession,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[User], int]:
    """List all users, oldest first."""
    total = (await db.execute(select(func.count()).select_from(User))).scalar() or 0
    result = await db.execute(
        select(User).order_by(User.created_at.asc(), User.id.asc()).offset(offset).limit(limit),
    )
    return list(result.scalars().all()), total


async def delete_user(db: AsyncSession, storage: BlobStorage, user: User) -> None:
    """
    Delete a user and everything they own.

    Each prompt is deleted through the prompt service so tag counters and
    stored attachments are cleaned up. Versions the user authored on other
    users' prompts are kept with their editor cleared.
    """
    result = await db.execute(select(Prompt.id).where(Prompt.user_id == user.id))
    for prompt_id in result.scalars().all():
        prompt = await prompt_service.get(db, prompt_id)
        await prompt_service.delete(db, storage, prompt)

    user_id = user.id
    await db.delete(user)
    await db.flush()
    logger.info("Deleted user %s", user_id)


async def set_role(db: AsyncSession, user: User, role: UserRole) -> User:
    """Grant or revoke the admin role."""
    user.role = UserRole(role).value
    await db.flush()
    await db.refresh(user)
    logger.info("Set role of user %s to %s", user.id, user.role)
    return user
