"""Authentication module for locally issued JWT bearer tokens."""
import logging
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_TYPE = "access"
OTP_PENDING_TOKEN_TYPE = "otp_pending"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _encode(user: User, token_type: str, ttl: timedelta, settings: Settings) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user: User, settings: Settings | None = None) -> str:
    """Issue a bearer access token for a signed-in user."""
    settings = settings or get_settings()
    return _encode(
        user, ACCESS_TOKEN_TYPE, timedelta(minutes=settings.access_token_ttl_minutes), settings,
    )


def create_otp_pending_token(user: User, settings: Settings | None = None) -> str:
    """
    Issue a short-lived token proving the password step of sign-in passed.

    It can only be exchanged (with a TOTP code) for an access token; it is
    never accepted as a bearer token.
    """
    settings = settings or get_settings()
    return _encode(
        user,
        OTP_PENDING_TOKEN_TYPE,
        timedelta(minutes=settings.otp_pending_ttl_minutes),
        settings,
    )


def decode_token(token: str, expected_type: str, settings: Settings) -> int:
    """
    Decode and validate a token, returning the user id it was issued for.

    Raises:
        HTTPException: If the token is invalid, expired, or of the wrong type.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise _unauthorized("Invalid token type")
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")


async def get_user_from_token(
    db: AsyncSession,
    token: str,
    expected_type: str = ACCESS_TOKEN_TYPE,
    settings: Settings | None = None,
) -> User:
    """
    Resolve a token to its user.

    Raises:
        HTTPException: If the token is invalid or the user no longer exists.
    """
    settings = settings or get_settings()
    user_id = decode_token(token, expected_type, settings)
    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Token presented for missing user %s", user_id)
        raise _unauthorized("User not found")
    return user


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Return the authenticated user, or None for anonymous requests.

    A missing Authorization header means anonymous; a present but invalid
    token is still rejected with 401.
    """
    if credentials is None:
        return None
    return await get_user_from_token(db, credentials.credentials, settings=settings)


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    """Return the authenticated user, rejecting anonymous requests with 401."""
    if user is None:
        raise _unauthorized("Not authenticated")
    return user
