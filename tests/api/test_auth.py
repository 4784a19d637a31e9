"""Tests for sign-up, sign-in, bearer tokens and two-factor endpoints."""
from datetime import UTC, datetime, timedelta

import jwt
import pyotp
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import create_otp_pending_token
from core.config import get_settings
from models.user import User
from tests.factories import PASSWORD, auth_headers


async def _sign_in(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
    response = await client.post("/auth/sign-in", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


async def test__sign_up__returns_usable_token(client: AsyncClient) -> None:
    response = await client.post(
        "/auth/sign-up",
        json={"email": "fresh@example.com", "password": "hunter22", "name": "Fresh"},
    )

    assert response.status_code == 201
    token = response.json()["access_token"]
    me = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "fresh@example.com"
    assert me.json()["role"] == "user"


async def test__sign_up__invalid_email_is_422(client: AsyncClient) -> None:
    response = await client.post(
        "/auth/sign-up", json={"email": "not-an-email", "password": "hunter22"},
    )
    assert response.status_code == 422


async def test__sign_up__duplicate_email_reports_field_error(
    client: AsyncClient,
    test_user: User,
) -> None:
    response = await client.post(
        "/auth/sign-up", json={"email": "owner@example.com", "password": "hunter22"},
    )
    assert response.status_code == 422
    assert response.json()["errors"] == {"email": ["Email has already been taken"]}


async def test__sign_in__without_two_factor_returns_access_token(
    client: AsyncClient,
    test_user: User,
) -> None:
    data = await _sign_in(client, "owner@example.com")

    assert data["otp_required"] is False
    assert data["otp_token"] is None
    me = await client.get("/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.json()["id"] == test_user.id


async def test__sign_in__wrong_password_is_401(
    client: AsyncClient,
    test_user: User,
) -> None:
    response = await client.post(
        "/auth/sign-in", json={"email": "owner@example.com", "password": "nope"},
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email or password"}


async def test__expired_token_is_rejected(
    client: AsyncClient,
    test_user: User,
) -> None:
    settings = get_settings()
    token = jwt.encode(
        {
            "sub": str(test_user.id),
            "type": "access",
            "exp": datetime.now(UTC) - timedelta(minutes=1),
        },
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Token has expired"}


async def test__pending_token_is_not_a_bearer_token(
    client: AsyncClient,
    test_user: User,
) -> None:
    token = create_otp_pending_token(test_user)
    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid token type"}


async def test__two_factor__full_enrollment_and_sign_in_flow(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,
) -> None:
    headers = auth_headers(test_user)

    settings = (await client.get("/auth/two-factor/settings", headers=headers)).json()
    assert settings["otp_enabled"] is False
    assert settings["provisioning_uri"].startswith("otpauth://totp/")
    assert "<svg" in settings["qr_code"]
    totp = pyotp.TOTP(settings["secret"])

    response = await client.post(
        "/auth/two-factor/settings", json={"otp_attempt": totp.now()}, headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["otp_enabled"] is True

    # Enrollment consumed the current time step; simulate the next code arriving later
    test_user.consumed_timestep -= 1
    await db_session.flush()

    sign_in = await _sign_in(client, "owner@example.com")
    assert sign_in["otp_required"] is True
    assert sign_in["access_token"] is None

    response = await client.post(
        "/auth/two-factor",
        json={"otp_token": sign_in["otp_token"], "otp_attempt": totp.now()},
    )
    assert response.status_code == 200
    access_token = response.json()["access_token"]
    me = await client.get("/users/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.json()["otp_required_for_login"] is True

    # Replaying the same code is rejected
    replay = await client.post(
        "/auth/two-factor",
        json={"otp_token": sign_in["otp_token"], "otp_attempt": totp.now()},
    )
    assert replay.status_code == 401
    assert replay.json() == {"detail": "Invalid authentication code"}


async def test__two_factor__enable_with_wrong_code_is_422(
    client: AsyncClient,
    test_user: User,
) -> None:
    headers = auth_headers(test_user)
    settings = (await client.get("/auth/two-factor/settings", headers=headers)).json()
    stale = pyotp.TOTP(settings["secret"]).at(datetime.now(UTC) - timedelta(minutes=10))

    response = await client.post(
        "/auth/two-factor/settings", json={"otp_attempt": stale}, headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"] == {"otp_attempt": ["Invalid authentication code"]}


async def test__two_factor__disable(
    client: AsyncClient,
    test_user: User,
) -> None:
    headers = auth_headers(test_user)
    settings = (await client.get("/auth/two-factor/settings", headers=headers)).json()
    await client.post(
        "/auth/two-factor/settings",
        json={"otp_attempt": pyotp.TOTP(settings["secret"]).now()},
        headers=headers,
    )

    response = await client.delete("/auth/two-factor/settings", headers=headers)

    assert response.status_code == 200
    assert response.json()["otp_enabled"] is False
    assert (await _sign_in(client, "owner@example.com"))["otp_required"] is False


async def test__two_factor__settings_require_authentication(client: AsyncClient) -> None:
    response = await client.get("/auth/two-factor/settings")
    assert response.status_code == 401
