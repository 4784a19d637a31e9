"""Pydantic schemas for sign-up, sign-in and two-factor endpoints."""
from pydantic import BaseModel, EmailStr


class SignUpRequest(BaseModel):
    """Schema for registering a new account."""

    email: EmailStr
    password: str
    name: str | None = None
    username: str | None = None


class SignInRequest(BaseModel):
    """Schema for signing in with email and password."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Bearer access token issued after a completed sign-in."""

    access_token: str
    token_type: str = "bearer"


class SignInResponse(BaseModel):
    """
    Result of the password step of sign-in.

    When the account has two-factor authentication enabled, `otp_required` is
    true and `otp_token` must be exchanged together with a TOTP code at
    POST /auth/two-factor; otherwise `access_token` is set directly.
    """

    otp_required: bool
    access_token: str | None = None
    otp_token: str | None = None
    token_type: str = "bearer"


class TwoFactorVerifyRequest(BaseModel):
    """Schema for completing sign-in with a TOTP code."""

    otp_token: str
    otp_attempt: str


class TwoFactorSetupResponse(BaseModel):
    """Two-factor settings; setup material is only present while 2FA is disabled."""

    otp_enabled: bool
    secret: str | None = None
    provisioning_uri: str | None = None
    qr_code: str | None = None  # SVG markup


class TwoFactorEnableRequest(BaseModel):
    """Schema for confirming 2FA setup with a code from the authenticator app."""

    otp_attempt: str
