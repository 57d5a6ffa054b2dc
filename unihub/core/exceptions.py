"""
Typed application errors.

Services raise these; a single FastAPI exception handler turns them into
JSON responses of the form {"detail": ..., "code": ..., **context}.
Every error carries the ids/state the caller needs to build a precise message.
"""

from typing import Any

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.context}


# --- Not found / auth -------------------------------------------------------

class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any = None, message: str | None = None):
        super().__init__(
            message or f"{entity} not found",
            entity=entity,
            entity_id=entity_id,
        )


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_required"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotVerified(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_verified"

    def __init__(self, message: str = "Please verify your email first"):
        super().__init__(message)


# --- Business rules ---------------------------------------------------------

class BadRequest(AppError):
    code = "bad_request"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InsufficientSeats(AppError):
    """Raised by the seat ledger when a reservation does not fit."""

    code = "insufficient_seats"

    def __init__(self, poster_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough seats available. Requested: {requested}, Available: {available}",
            poster_id=poster_id,
            requested=requested,
            available=available,
        )


class CapacityExceeded(AppError):
    code = "capacity_exceeded"

    def __init__(self, poster_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough seats available. Requested: {requested}, Available: {available}",
            poster_id=poster_id,
            requested=requested,
            available=available,
        )


class InvalidSeatCount(AppError):
    code = "invalid_seat_count"


class InvalidTransition(AppError):
    code = "invalid_transition"


class AlreadyDecided(InvalidTransition):
    code = "already_decided"

    def __init__(self, booking_id: int, current_status: str):
        super().__init__(
            f"Ticket already {current_status}",
            booking_id=booking_id,
            current_status=current_status,
        )


# --- Token lifecycle --------------------------------------------------------

class InvalidCode(AppError):
    code = "invalid_code"


class Expired(AppError):
    code = "expired"


class NoRequestFound(AppError):
    code = "no_request_found"

    def __init__(self, message: str = "No password reset request found"):
        super().__init__(message)


class AlreadyVerified(AppError):
    code = "already_verified"

    def __init__(self, message: str = "Email is already verified"):
        super().__init__(message)


# --- Infrastructure ---------------------------------------------------------

class NotificationFailed(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "notification_failed"


class TransientStoreError(AppError):
    """The only error class a caller may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "transient_store_error"

    def __init__(self, message: str = "Storage temporarily unavailable, please retry"):
        super().__init__(message)
