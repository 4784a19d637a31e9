"""Service layer for TOTP two-factor authentication."""
import logging
from datetime import UTC, datetime, timedelta

import pyotp
import qrcode
from pyotp.utils import strings_equal
from qrcode.image.svg import SvgPathImage
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.user import User
from services.exceptions import ValidationError

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid authentication code"


def _totp(user: User) -> pyotp.TOTP:
    return pyotp.TOTP(user.otp_secret)


async def ensure_secret(db: AsyncSession, user: User) -> str:
    """Return the user's OTP secret, generating and storing one if missing."""
    if not user.otp_secret:
        user.otp_secret = pyotp.random_base32()
        user.consumed_timestep = None
        await db.flush()
    return user.otp_secret


def provisioning_uri(user: User) -> str:
    """Return the otpauth:// URI an authenticator app enrolls from."""
    return _totp(user).provisioning_uri(name=user.email, issuer_name=get_settings().otp_issuer)


def qr_code_svg(uri: str) -> str:
    """Render a provisioning URI as inline SVG markup."""
    image = qrcode.make(uri, image_factory=SvgPathImage)
    return image.to_string(encoding="unicode")


async def verify_and_consume(
    db: AsyncSession,
    user: User,
    code: str | None,
    drift_seconds: int,
) -> bool:
    """
    Check a TOTP code, tolerating clock drift, and consume its time step.

    A code matches if it equals the code of any time step within
    `drift_seconds` of now. Each time step can be used once: steps at or
    before the last consumed step are rejected, so a captured code cannot be
    replayed.

    Returns:
        True if the code was accepted (and its time step recorded).
    """
    if not user.otp_secret or not code:
        return False

    totp = _totp(user)
    attempt = code.replace(" ", "").strip()
    now = datetime.now(UTC)
    window = max(drift_seconds // totp.interval, 0)

    for offset in range(-window, window + 1):
        at = now + timedelta(seconds=offset * totp.interval)
        timestep = totp.timecode(at)
        if user.consumed_timestep is not None and timestep <= user.consumed_timestep:
            continue
        if strings_equal(attempt, totp.at(at)):
            user.consumed_timestep = timestep
            await db.flush()
            return True

    logger.warning("Rejected two-factor code for user %s", user.id)
    return False


async def enable(db: AsyncSession, user: User, code: str) -> User:
    """
    Turn on two-factor sign-in after confirming a code from the authenticator.

    Raises:
        ValidationError: If no secret has been issued yet or the code is wrong.
    """
    drift = get_settings().otp_setup_drift_seconds
    if not await verify_and_consume(db, user, code, drift):
        raise ValidationError({"otp_attempt": [INVALID_CODE_MESSAGE]})
    user.otp_required_for_login = True
    await db.flush()
    logger.info("Enabled two-factor authentication for user %s", user.id)
    return user


async def disable(db: AsyncSession, user: User) -> User:
    """Turn off two-factor sign-in and discard the secret."""
    user.otp_required_for_login = False
    user.otp_secret = None
    user.consumed_timestep = None
    await db.flush()
    logger.info("Disabled two-factor authentication for user %s", user.id)
    return user
