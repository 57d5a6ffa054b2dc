"""
Authentication endpoints: registration, email verification, login and
password management.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.security import get_current_user_id
from unihub.db.session import get_db
from unihub.schemas.user import (
    ChangePasswordRequest,
    EmailRequest,
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    ResetPasswordRequest,
    UserCreate,
    UserLogin,
    UserResponse,
    VerifyEmailRequest,
)
from unihub.services import auth_service
from unihub.services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Register a student account. A 6-digit verification code is emailed."""
    user = await auth_service.register_user(db, user_data, notifier)
    return RegisterResponse(
        message="User registered successfully. Please check your email for verification code",
        user=UserResponse.model_validate(user),
    )


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(payload: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.verify_email(db, payload.email, payload.code)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    payload: EmailRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    await auth_service.resend_verification(db, payload.email, notifier)
    return MessageResponse(message="Verification code sent")


@router.post("/login", response_model=LoginResponse)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate a verified account and receive a JWT access token."""
    token, user = await auth_service.authenticate_user(db, login_data.email, login_data.password)
    return LoginResponse(access_token=token, user=UserResponse.model_validate(user))


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, user_id, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: EmailRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    await auth_service.forgot_password(db, payload.email, notifier)
    return MessageResponse(message="Password reset code sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.reset_password(db, payload.email, payload.code, payload.new_password)
    return MessageResponse(message="Password reset successfully")
