"""
Authentication service: registration, email verification, login and password
management. Every public function is one unit of work and commits itself.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.config import get_settings
from unihub.core.exceptions import (
    Conflict,
    InvalidCredentials,
    NotFound,
    NotificationFailed,
    NotVerified,
)
from unihub.core.logging import get_logger
from unihub.core.security import create_token_for, hash_password, verify_password
from unihub.models.user import Role, User
from unihub.schemas.user import UserCreate
from unihub.services import token_service
from unihub.services.notifier import Notifier, Template

logger = get_logger(__name__)
settings = get_settings()


async def register_user(db: AsyncSession, user_data: UserCreate, notifier: Notifier) -> User:
    """
    Create an unverified student account and email it a verification code.
    If the email cannot be sent nothing is persisted.
    """
    email = user_data.email.strip().lower()
    if await token_service.find_user_by_email(db, email):
        logger.warning("registration_failed", reason="email_exists")
        raise Conflict("Email already exists", email=email)

    user = User(
        name=user_data.name,
        surname=user_data.surname,
        email=email,
        hashed_password=hash_password(user_data.password),
        role=Role.STUDENT.value,
        phone=user_data.phone,
        gender=user_data.gender,
        birth_date=user_data.birth_date,
        is_verified=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same address
        await db.rollback()
        logger.warning("registration_failed", reason="email_exists")
        raise Conflict("Email already exists", email=email) from e

    code = await token_service.issue_verification_token(db, user.id)
    sent = await notifier.send(
        email, Template.VERIFICATION, {"code": code, "ttl_hours": settings.VERIFICATION_CODE_TTL_HOURS}
    )
    if not sent:
        await db.rollback()
        logger.error("registration_failed", reason="verification_email_failed")
        raise NotificationFailed("Failed to send verification email", email=email)

    await db.commit()
    await db.refresh(user)
    logger.info("user_registered", user_id=user.id)
    return user


async def verify_email(db: AsyncSession, email: str, code: str) -> User:
    try:
        user = await token_service.redeem_verification_token(db, email, code)
    except Exception:
        await db.rollback()
        raise
    await db.commit()
    return user


async def resend_verification(db: AsyncSession, email: str, notifier: Notifier) -> None:
    user = await token_service.find_user_by_email(db, email)
    if user is None:
        raise NotFound("User", message="User not found")

    code = await token_service.issue_verification_token(db, user.id)
    sent = await notifier.send(
        user.email, Template.VERIFICATION, {"code": code, "ttl_hours": settings.VERIFICATION_CODE_TTL_HOURS}
    )
    if not sent:
        await db.rollback()
        raise NotificationFailed("Failed to send verification email", email=user.email)
    await db.commit()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> tuple[str, User]:
    """
    Return (JWT, user). Unknown email and wrong password are both
    InvalidCredentials; an existing unverified account is NotVerified
    whatever the password.
    """
    user = await token_service.find_user_by_email(db, email)
    if user is None:
        logger.warning("login_failed", reason="unknown_email")
        raise InvalidCredentials()

    if not user.is_verified:
        logger.warning("login_failed", reason="not_verified", user_id=user.id)
        raise NotVerified()

    if not verify_password(password, user.hashed_password):
        logger.warning("login_failed", reason="bad_password", user_id=user.id)
        raise InvalidCredentials()

    token = create_token_for(user.id, user.role)
    logger.info("user_logged_in", user_id=user.id)
    return token, user


async def change_password(
    db: AsyncSession, user_id: int, current_password: str, new_password: str
) -> None:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User", user_id)
    if not verify_password(current_password, user.hashed_password):
        raise InvalidCredentials("Current password is incorrect")

    user.hashed_password = hash_password(new_password)
    await db.commit()
    logger.info("password_changed", user_id=user_id)


async def forgot_password(db: AsyncSession, email: str, notifier: Notifier) -> None:
    user, code = await token_service.issue_reset_token(db, email)
    sent = await notifier.send(
        user.email, Template.PASSWORD_RESET, {"code": code, "ttl_minutes": settings.RESET_CODE_TTL_MINUTES}
    )
    if not sent:
        await db.rollback()
        raise NotificationFailed("Failed to send reset email", email=user.email)
    await db.commit()


async def reset_password(db: AsyncSession, email: str, code: str, new_password: str) -> None:
    try:
        await token_service.redeem_reset_token(db, email, code, new_password)
    except Exception:
        await db.rollback()
        raise
    await db.commit()
