"""
Verification and password-reset code lifecycle.

Both codes are 6-digit numbers drawn uniformly from [100000, 999999] and are
stored on the user row with an expiry timestamp:

  verification: issued on registration (or resend), cleared on success
  reset:        issued on forgot-password, overwrites any outstanding code,
                cleared on success

These functions mutate and flush; the calling operation owns the commit.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.config import get_settings
from unihub.core.exceptions import (
    AlreadyVerified,
    Expired,
    InvalidCode,
    NoRequestFound,
    NotFound,
)
from unihub.core.logging import get_logger
from unihub.core.metrics import record_token
from unihub.core.security import hash_password
from unihub.models.user import User

logger = get_logger(__name__)
settings = get_settings()

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if expires_at is None:
        return False
    return (now or utcnow()) > as_utc(expires_at)


def codes_match(expected: Optional[str], given: str) -> bool:
    if expected is None:
        return False
    return secrets.compare_digest(expected.encode(), given.encode())


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def issue_verification_token(db: AsyncSession, user_id: int) -> str:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User", user_id)
    if user.is_verified:
        raise AlreadyVerified()

    code = generate_code()
    user.verification_code = code
    user.verification_expires = utcnow() + timedelta(hours=settings.VERIFICATION_CODE_TTL_HOURS)
    await db.flush()

    record_token("verification", "issued")
    logger.info("verification_code_issued", user_id=user.id)
    return code


async def redeem_verification_token(db: AsyncSession, email: str, code: str) -> User:
    user = await find_user_by_email(db, email)
    if user is None:
        raise NotFound("User", message="User not found")
    if user.is_verified:
        record_token("verification", "already_verified")
        raise AlreadyVerified()
    if is_expired(user.verification_expires):
        record_token("verification", "expired")
        raise Expired("Verification code has expired", user_id=user.id)
    if not codes_match(user.verification_code, code):
        record_token("verification", "invalid")
        logger.warning("verification_failed", user_id=user.id, reason="code_mismatch")
        raise InvalidCode("Invalid verification code")

    user.is_verified = True
    user.verification_code = None
    user.verification_expires = None
    await db.flush()

    record_token("verification", "redeemed")
    logger.info("email_verified", user_id=user.id)
    return user


async def issue_reset_token(db: AsyncSession, email: str) -> tuple[User, str]:
    user = await find_user_by_email(db, email)
    if user is None:
        raise NotFound("User", message="User not found")

    code = generate_code()
    user.reset_password_code = code
    user.reset_password_expires = utcnow() + timedelta(minutes=settings.RESET_CODE_TTL_MINUTES)
    await db.flush()

    record_token("reset", "issued")
    logger.info("reset_code_issued", user_id=user.id)
    return user, code


async def redeem_reset_token(db: AsyncSession, email: str, code: str, new_password: str) -> User:
    """Checks presence, then expiry, then equality - in that order."""
    user = await find_user_by_email(db, email)
    if user is None:
        raise NotFound("User", message="User not found")
    if user.reset_password_code is None or user.reset_password_expires is None:
        record_token("reset", "no_request")
        raise NoRequestFound()
    if is_expired(user.reset_password_expires):
        record_token("reset", "expired")
        raise Expired("Reset code has expired", user_id=user.id)
    if not codes_match(user.reset_password_code, code):
        record_token("reset", "invalid")
        logger.warning("password_reset_failed", user_id=user.id, reason="code_mismatch")
        raise InvalidCode("Invalid reset code")

    user.hashed_password = hash_password(new_password)
    user.reset_password_code = None
    user.reset_password_expires = None
    await db.flush()

    record_token("reset", "redeemed")
    logger.info("password_reset", user_id=user.id)
    return user
