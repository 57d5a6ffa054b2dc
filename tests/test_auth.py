"""
Tests for registration, email verification, login and password flows.
"""

from datetime import timedelta

import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from unihub.core.config import get_settings
from unihub.models.user import User
from unihub.services import token_service
from unihub.services.notifier import ConsoleNotifier, get_notifier
from unihub.services.token_service import utcnow
from unihub.main import app

from tests.conftest import PASSWORD, headers_for, last_code, make_user

REGISTER = {
    "name": "Ada",
    "surname": "Lovelace",
    "email": "ada@example.com",
    "password": "difference-engine",
}


class FailingNotifier(ConsoleNotifier):
    async def _deliver(self, address, subject, body):
        raise ConnectionError("smtp down")


async def _register_and_verify(client: AsyncClient, notifier: ConsoleNotifier) -> dict:
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 201
    code = last_code(notifier, REGISTER["email"])
    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": code}
    )
    assert response.status_code == 200
    return REGISTER


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient, notifier: ConsoleNotifier):
    """New accounts are unverified students and get a 6-digit code by email."""
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == REGISTER["email"]
    assert data["user"]["role"] == "student"
    assert data["user"]["is_verified"] is False
    assert "password" not in data["user"]
    assert "verification_code" not in data["user"]

    code = last_code(notifier, REGISTER["email"])
    assert 100000 <= int(code) <= 999999


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient):
    await client.post("/api/v1/auth/register", json=REGISTER)
    response = await client.post(
        "/api/v1/auth/register", json={**REGISTER, "email": "ADA@example.com"}
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already exists"


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={**REGISTER, "password": "short"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_duplicate_email_lost_race(client: AsyncClient, db_session, monkeypatch):
    """The unique index still answers 409 when a concurrent insert slips past the lookup."""
    await make_user(db_session, REGISTER["email"], verified=False)

    async def nobody(db, email):
        return None

    monkeypatch.setattr(token_service, "find_user_by_email", nobody)
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already exists"


@pytest.mark.asyncio
async def test_register_password_too_long_for_bcrypt(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={**REGISTER, "password": "p" * 100})
    assert response.status_code == 422

    # 40 characters but 80 bytes
    response = await client.post("/api/v1/auth/register", json={**REGISTER, "password": "\u00e9" * 40})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_rolls_back_when_email_fails(client: AsyncClient, db_session):
    """Nothing is persisted if the verification email cannot be sent."""
    app.dependency_overrides[get_notifier] = lambda: FailingNotifier()
    response = await client.post("/api/v1/auth/register", json=REGISTER)
    assert response.status_code == 502
    assert response.json()["code"] == "notification_failed"

    result = await db_session.execute(select(User).where(User.email == REGISTER["email"]))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_login_requires_verification(client: AsyncClient):
    """Unverified accounts are refused before the password is even checked."""
    await client.post("/api/v1/auth/register", json=REGISTER)

    for password in (REGISTER["password"], "wrong-password"):
        response = await client.post(
            "/api/v1/auth/login", json={"email": REGISTER["email"], "password": password}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "not_verified"
        assert response.json()["detail"] == "Please verify your email first"


@pytest.mark.asyncio
async def test_verify_then_login(client: AsyncClient, notifier: ConsoleNotifier):
    await _register_and_verify(client, notifier)

    response = await client.post(
        "/api/v1/auth/login", json={"email": REGISTER["email"], "password": REGISTER["password"]}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["is_verified"] is True

    settings = get_settings()
    claims = jwt.decode(data["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["sub"] == str(data["user"]["id"])
    assert claims["role"] == "student"


@pytest.mark.asyncio
async def test_verify_wrong_code(client: AsyncClient, notifier: ConsoleNotifier):
    await client.post("/api/v1/auth/register", json=REGISTER)
    code = last_code(notifier, REGISTER["email"])
    wrong = "100000" if code != "100000" else "100001"

    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": wrong}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid verification code"


@pytest.mark.asyncio
async def test_verify_expired_code(client: AsyncClient, notifier: ConsoleNotifier, db_session):
    await client.post("/api/v1/auth/register", json=REGISTER)
    code = last_code(notifier, REGISTER["email"])

    await db_session.execute(
        update(User)
        .where(User.email == REGISTER["email"])
        .values(verification_expires=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": code}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "expired"


@pytest.mark.asyncio
async def test_verify_twice(client: AsyncClient, notifier: ConsoleNotifier):
    await _register_and_verify(client, notifier)
    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": "123456"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "already_verified"


@pytest.mark.asyncio
async def test_resend_verification_replaces_code(client: AsyncClient, notifier: ConsoleNotifier):
    await client.post("/api/v1/auth/register", json=REGISTER)
    response = await client.post(
        "/api/v1/auth/resend-verification", json={"email": REGISTER["email"]}
    )
    assert response.status_code == 200
    assert len(notifier.outbox) == 2

    code = last_code(notifier, REGISTER["email"])
    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": code}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, student):
    response = await client.post(
        "/api/v1/auth/login", json={"email": student.email, "password": "wrongpassword"}
    )
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient, db_session):
    response = await client.post(
        "/api/v1/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_password_reset_flow(client: AsyncClient, notifier: ConsoleNotifier, student):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
    assert response.status_code == 200
    code = last_code(notifier, student.email)

    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": code, "new_password": "brand-new-secret"},
    )
    assert response.status_code == 200

    response = await client.post(
        "/api/v1/auth/login", json={"email": student.email, "password": "brand-new-secret"}
    )
    assert response.status_code == 200

    # The code is single use
    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": code, "new_password": "another-secret"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "no_request_found"


@pytest.mark.asyncio
async def test_reset_without_request(client: AsyncClient, student):
    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": "123456", "new_password": "brand-new-secret"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "No password reset request found"


@pytest.mark.asyncio
async def test_reset_expired_code(client: AsyncClient, notifier: ConsoleNotifier, student, db_session):
    await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
    code = last_code(notifier, student.email)

    await db_session.execute(
        update(User)
        .where(User.id == student.id)
        .values(reset_password_expires=utcnow() - timedelta(seconds=1))
    )
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": code, "new_password": "brand-new-secret"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "expired"


@pytest.mark.asyncio
async def test_second_reset_request_overwrites_code(client: AsyncClient, notifier: ConsoleNotifier, student):
    await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
    first = last_code(notifier, student.email)
    await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
    second = last_code(notifier, student.email)

    if first != second:
        response = await client.post(
            "/api/v1/auth/reset-password",
            json={"email": student.email, "code": first, "new_password": "brand-new-secret"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_code"

    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": second, "new_password": "brand-new-secret"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_forgot_password_unknown_email(client: AsyncClient, db_session):
    response = await client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, student):
    response = await client.put(
        "/api/v1/auth/change-password",
        json={"current_password": "not-my-password", "new_password": "brand-new-secret"},
        headers=headers_for(student),
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Current password is incorrect"

    response = await client.put(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-secret"},
        headers=headers_for(student),
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_get_me(client: AsyncClient, student):
    response = await client.get("/api/v1/users/me", headers=headers_for(student))
    assert response.status_code == 200
    assert response.json()["email"] == student.email


@pytest.mark.asyncio
async def test_get_me_requires_token(client: AsyncClient, db_session):
    response = await client.get("/api/v1/users/me")
    assert response.status_code == 401

    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_new_password_too_long_for_bcrypt(client: AsyncClient, notifier: ConsoleNotifier, student):
    response = await client.put(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "p" * 100},
        headers=headers_for(student),
    )
    assert response.status_code == 422

    await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
    code = last_code(notifier, student.email)
    response = await client.post(
        "/api/v1/auth/reset-password",
        json={"email": student.email, "code": code, "new_password": "p" * 100},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_verify_code_with_whitespace_rejected(client: AsyncClient, notifier: ConsoleNotifier):
    await client.post("/api/v1/auth/register", json=REGISTER)
    code = last_code(notifier, REGISTER["email"])
    response = await client.post(
        "/api/v1/auth/verify-email", json={"email": REGISTER["email"], "code": f" {code} "}
    )
    assert response.status_code == 422
