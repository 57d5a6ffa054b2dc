from unihub.schemas.user import (
    UserCreate, UserResponse, UserLogin, Token, LoginResponse, RegisterResponse,
    VerifyEmailRequest, EmailRequest, ChangePasswordRequest, ResetPasswordRequest,
    RoleUpdate, MessageResponse,
)
from unihub.schemas.club import ClubCreate, ClubResponse, EventCreate, EventResponse
from unihub.schemas.poster import PosterCreate, PosterUpdate, PosterResponse, PosterListResponse
from unihub.schemas.booking import (
    BookingCreate, BookingResponse, BookingDetailResponse, PendingBookingResponse,
    BookingStatusUpdate, BookingDeleteResponse, CalendarEntry,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token", "LoginResponse", "RegisterResponse",
    "VerifyEmailRequest", "EmailRequest", "ChangePasswordRequest", "ResetPasswordRequest",
    "RoleUpdate", "MessageResponse",
    "ClubCreate", "ClubResponse", "EventCreate", "EventResponse",
    "PosterCreate", "PosterUpdate", "PosterResponse", "PosterListResponse",
    "BookingCreate", "BookingResponse", "BookingDetailResponse", "PendingBookingResponse",
    "BookingStatusUpdate", "BookingDeleteResponse", "CalendarEntry",
]
