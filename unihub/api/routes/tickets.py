"""
Ticket booking endpoints.

Every route that moves seats (book, reject, delete) drops the poster list
cache afterwards so listings pick up the new seats_left.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.logging import get_logger
from unihub.core.security import Identity, get_current_identity, get_current_user_id
from unihub.db.session import get_db
from unihub.models.booking import BookingStatus
from unihub.schemas.booking import (
    BookingCreate,
    BookingDeleteResponse,
    BookingDetailResponse,
    BookingResponse,
    BookerSummary,
    BookingStatusUpdate,
    CalendarEntry,
    PendingBookingResponse,
    PosterSummary,
)
from unihub.services import booking_service
from unihub.services.blob_store import BlobStore, get_blob_store
from unihub.services.cache_service import invalidate_poster_cache

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


def _detail(booking, poster) -> BookingDetailResponse:
    response = BookingDetailResponse.model_validate(booking)
    if poster is not None:
        response.poster = PosterSummary.model_validate(poster)
    return response


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_ticket(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Book seats on a poster.

    Seats are taken from the poster immediately and the booking starts as
    pending. Returns 400 when fewer seats are left than requested.
    """
    booking = await booking_service.create_booking(db, user_id, booking_data, blob_store)
    await invalidate_poster_cache()
    return booking


@router.get("/my", response_model=list[BookingDetailResponse])
async def my_tickets(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await booking_service.list_user_bookings(db, user_id)
    return [_detail(booking, poster) for booking, poster in rows]


@router.get("/pending", response_model=list[PendingBookingResponse])
async def pending_tickets(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Pending tickets on the caller's own posters (head admins)."""
    rows = await booking_service.list_pending_bookings(db, identity)
    return [
        PendingBookingResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            poster=PosterSummary.model_validate(poster),
            user=BookerSummary.model_validate(user),
        )
        for booking, poster, user in rows
    ]


@router.get("/calendar", response_model=list[CalendarEntry])
async def ticket_calendar(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await booking_service.user_calendar(db, user_id)
    return [
        CalendarEntry(
            id=booking.id,
            title=poster.event_title,
            date=poster.event_date,
            time=poster.time,
            location=poster.location,
            persons=booking.number_of_persons,
        )
        for booking, poster in rows
    ]


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_ticket(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    booking, poster = await booking_service.get_booking(db, booking_id, identity)
    return _detail(booking, poster)


@router.put("/{booking_id}/approve", response_model=BookingResponse)
async def approve_ticket(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.approve_booking(db, booking_id, identity)


@router.put("/{booking_id}/reject", response_model=BookingResponse)
async def reject_ticket(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Rejecting returns the booking's seats to the poster."""
    booking = await booking_service.reject_booking(db, booking_id, identity)
    await invalidate_poster_cache()
    return booking


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_ticket_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.update_booking_status(
        db, booking_id, BookingStatus(payload.status), identity
    )
    await invalidate_poster_cache()
    return booking


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_ticket(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete a ticket. Pending and approved tickets give their seats back."""
    released = await booking_service.delete_booking(db, booking_id, identity, blob_store)
    await invalidate_poster_cache()
    return BookingDeleteResponse(
        message="Ticket deleted successfully",
        booking_id=booking_id,
        seats_released=released,
    )
