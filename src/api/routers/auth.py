"""Sign-up, sign-in and two-factor endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.auth import (
    OTP_PENDING_TOKEN_TYPE,
    create_access_token,
    create_otp_pending_token,
    get_user_from_token,
)
from core.config import Settings
from models.user import User
from schemas.auth import (
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    TokenResponse,
    TwoFactorEnableRequest,
    TwoFactorSetupResponse,
    TwoFactorVerifyRequest,
)
from services import two_factor_service, user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-up", response_model=TokenResponse, status_code=201)
async def sign_up(
    data: SignUpRequest,
    db: AsyncSession = Depends(get_async_session),
) -> TokenResponse:
    """
    Register a new account and sign it in.

    Returns 422 with every invalid field if the email or username is taken or
    the password length is out of range.
    """
    user = await user_service.sign_up(db, data)
    return TokenResponse(access_token=create_access_token(user))


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    data: SignInRequest,
    db: AsyncSession = Depends(get_async_session),
) -> SignInResponse:
    """
    Check email and password.

    If the account has two-factor sign-in enabled, no access token is issued
    yet: the response carries `otp_required=true` and an `otp_token` to send
    with a TOTP code to POST /auth/two-factor.
    """
    user = await user_service.authenticate(db, data.email, data.password)
    if user is None:
        logger.warning("Sign-in rejected for %s", data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.otp_required_for_login:
        return SignInResponse(otp_required=True, otp_token=create_otp_pending_token(user))
    return SignInResponse(otp_required=False, access_token=create_access_token(user))


@router.post("/two-factor", response_model=TokenResponse)
async def verify_two_factor(
    data: TwoFactorVerifyRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Exchange a pending sign-in token and a TOTP code for an access token."""
    user = await get_user_from_token(
        db, data.otp_token, expected_type=OTP_PENDING_TOKEN_TYPE, settings=settings,
    )
    accepted = await two_factor_service.verify_and_consume(
        db, user, data.otp_attempt, settings.otp_sign_in_drift_seconds,
    )
    if not accepted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=two_factor_service.INVALID_CODE_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info("Two-factor sign-in completed for user %s", user.id)
    return TokenResponse(access_token=create_access_token(user, settings))


@router.get("/two-factor/settings", response_model=TwoFactorSetupResponse)
async def get_two_factor_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TwoFactorSetupResponse:
    """
    Show two-factor status.

    While two-factor sign-in is off, a secret is generated if needed and the
    response includes it with a provisioning URI and an SVG QR code to scan.
    """
    if current_user.otp_required_for_login:
        return TwoFactorSetupResponse(otp_enabled=True)

    secret = await two_factor_service.ensure_secret(db, current_user)
    uri = two_factor_service.provisioning_uri(current_user)
    return TwoFactorSetupResponse(
        otp_enabled=False,
        secret=secret,
        provisioning_uri=uri,
        qr_code=two_factor_service.qr_code_svg(uri),
    )


@router.post("/two-factor/settings", response_model=TwoFactorSetupResponse)
async def enable_two_factor(
    data: TwoFactorEnableRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TwoFactorSetupResponse:
    """Enable two-factor sign-in; returns 422 if the code does not match."""
    await two_factor_service.enable(db, current_user, data.otp_attempt)
    return TwoFactorSetupResponse(otp_enabled=True)


@router.delete("/two-factor/settings", response_model=TwoFactorSetupResponse)
async def disable_two_factor(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TwoFactorSetupResponse:
    """Disable two-factor sign-in and discard the secret."""
    await two_factor_service.disable(db, current_user)
    return TwoFactorSetupResponse(otp_enabled=False)
