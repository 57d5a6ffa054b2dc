"""
Ticket booking state machine.

    create ──> pending ──approve──> approved
                  │
                  └────reject───> rejected      (seats released)

    delete from pending or approved releases seats; from rejected it does not.

LEDGER INVARIANT
================
For every poster:

    seats - seats_left == sum(number_of_persons) over pending + approved bookings

Every transition keeps it by moving the booking row and the ledger in the same
transaction:

  create   reserve(n) + INSERT pending
  approve  UPDATE pending -> approved                  (no ledger change)
  reject   UPDATE pending -> rejected + release(n)
  delete   DELETE row                 + release(n) if it held seats

Status changes are conditional (WHERE status = 'pending'), so when two
reviewers race only one UPDATE matches; the loser gets AlreadyDecided and
never releases seats a second time. Deletes are conditional on the status
that was read, and are retried if the booking moved underneath us.

_transition() is the only code that writes booking.status. The generic
status endpoint goes through approve/reject like everything else.
"""

import time
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.config import get_settings
from unihub.core.exceptions import (
    AlreadyDecided,
    CapacityExceeded,
    InsufficientSeats,
    InvalidTransition,
    NotFound,
    TransientStoreError,
)
from unihub.core.logging import get_logger
from unihub.core.metrics import booking_latency, record_booking_attempt, record_transition
from unihub.core.permissions import Action, authorize
from unihub.core.security import Identity
from unihub.models.booking import SEAT_HOLDING_STATUSES, BookingStatus, TicketBooking
from unihub.models.poster import Poster
from unihub.models.user import User
from unihub.schemas.booking import BookingCreate
from unihub.services import seat_ledger
from unihub.services.blob_store import BlobStore, decode_upload, get_blob_store

logger = get_logger(__name__)
settings = get_settings()

MAX_RETRY_ATTEMPTS = 3


async def _load_booking(db: AsyncSession, booking_id: int) -> TicketBooking:
    booking = await db.get(TicketBooking, booking_id, populate_existing=True)
    if booking is None:
        raise NotFound("Ticket booking", booking_id)
    return booking


async def _load_poster(db: AsyncSession, poster_id: int) -> Poster:
    poster = await db.get(Poster, poster_id)
    if poster is None:
        raise NotFound("Poster", poster_id, message="Associated poster not found")
    return poster


async def create_booking(
    db: AsyncSession,
    user_id: int,
    booking_data: BookingCreate,
    blob_store: Optional[BlobStore] = None,
) -> TicketBooking:
    """
    Reserve seats and record a pending booking in one transaction.
    Not idempotent: calling twice books twice.
    """
    start = time.perf_counter()
    poster_id = booking_data.poster_id
    persons = booking_data.number_of_persons

    proof_path: Optional[str] = None
    if booking_data.payment_proof_base64:
        blob_store = blob_store or get_blob_store()
        raw = decode_upload(booking_data.payment_proof_base64, settings.MAX_UPLOAD_BYTES)
        proof_path = await blob_store.store(raw, booking_data.payment_proof_ext, prefix="payment")

    try:
        await seat_ledger.reserve(db, poster_id, persons)
        booking = TicketBooking(
            poster_id=poster_id,
            user_id=user_id,
            number_of_persons=persons,
            payment_proof=proof_path,
            status=BookingStatus.PENDING.value,
        )
        db.add(booking)
        await db.commit()
    except InsufficientSeats as e:
        await db.rollback()
        if proof_path:
            await blob_store.delete(proof_path)
        record_booking_attempt("capacity_exceeded")
        raise CapacityExceeded(poster_id, requested=persons, available=e.context["available"]) from e
    except Exception as e:
        await db.rollback()
        if proof_path:
            await blob_store.delete(proof_path)
        record_booking_attempt("not_found" if isinstance(e, NotFound) else "error")
        raise

    await db.refresh(booking)
    booking_latency.observe(time.perf_counter() - start)
    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        poster_id=poster_id,
        persons=persons,
    )
    return booking


async def _transition(db: AsyncSession, booking: TicketBooking, target: BookingStatus) -> TicketBooking:
    """Move a pending booking to a decided state. The only writer of status."""
    booking_id = booking.id
    poster_id = booking.poster_id
    persons = booking.number_of_persons

    try:
        result = await db.execute(
            update(TicketBooking)
            .where(
                TicketBooking.id == booking_id,
                TicketBooking.status == BookingStatus.PENDING.value,
            )
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await db.scalar(
                select(TicketBooking.status).where(TicketBooking.id == booking_id)
            )
            if current is None:
                raise NotFound("Ticket booking", booking_id)
            record_transition("already_decided")
            raise AlreadyDecided(booking_id, current)

        if target is BookingStatus.REJECTED:
            await seat_ledger.release(db, poster_id, persons)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_transition(target.value)
    logger.info(
        "booking_decided",
        booking_id=booking_id,
        poster_id=poster_id,
        status=target.value,
        seats_released=persons if target is BookingStatus.REJECTED else 0,
    )
    return await _load_booking(db, booking_id)


async def _decide(
    db: AsyncSession, booking_id: int, identity: Identity, target: BookingStatus
) -> TicketBooking:
    booking = await _load_booking(db, booking_id)
    poster = await _load_poster(db, booking.poster_id)
    authorize(identity, Action.REVIEW_BOOKING, poster)

    if booking.status != BookingStatus.PENDING.value:
        record_transition("already_decided")
        raise AlreadyDecided(booking.id, booking.status)

    return await _transition(db, booking, target)


async def approve_booking(db: AsyncSession, booking_id: int, identity: Identity) -> TicketBooking:
    """Seats were committed at creation; approval leaves the ledger alone."""
    return await _decide(db, booking_id, identity, BookingStatus.APPROVED)


async def reject_booking(db: AsyncSession, booking_id: int, identity: Identity) -> TicketBooking:
    return await _decide(db, booking_id, identity, BookingStatus.REJECTED)


async def update_booking_status(
    db: AsyncSession, booking_id: int, new_status: BookingStatus, identity: Identity
) -> TicketBooking:
    if new_status is BookingStatus.APPROVED:
        return await approve_booking(db, booking_id, identity)
    if new_status is BookingStatus.REJECTED:
        return await reject_booking(db, booking_id, identity)
    raise InvalidTransition(
        f"Cannot move a booking to {new_status.value}",
        booking_id=booking_id,
        target_status=new_status.value,
    )


async def delete_booking(
    db: AsyncSession,
    booking_id: int,
    identity: Identity,
    blob_store: Optional[BlobStore] = None,
) -> int:
    """
    Delete a booking, crediting its seats back if it still held any.
    Returns the number of seats released.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        booking = await _load_booking(db, booking_id)
        authorize(identity, Action.DELETE_BOOKING, booking)

        observed_status = booking.status
        poster_id = booking.poster_id
        persons = booking.number_of_persons
        proof_path = booking.payment_proof
        released = persons if booking.holds_seats else 0

        try:
            result = await db.execute(
                delete(TicketBooking)
                .where(TicketBooking.id == booking_id, TicketBooking.status == observed_status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Decided or deleted since we read it
                await db.rollback()
                logger.info("booking_delete_retry", booking_id=booking_id, attempt=attempt)
                continue

            if released:
                await seat_ledger.release(db, poster_id, persons)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        db.expunge(booking)
        if proof_path and blob_store is not None:
            await blob_store.delete(proof_path)

        record_transition("deleted")
        logger.info(
            "booking_deleted",
            booking_id=booking_id,
            poster_id=poster_id,
            previous_status=observed_status,
            seats_released=released,
            by=identity.user_id,
        )
        return released

    raise TransientStoreError("Booking changed while deleting, please retry")


# --- Reads -----------------------------------------------------------------

async def get_booking(db: AsyncSession, booking_id: int, identity: Identity) -> tuple[TicketBooking, Optional[Poster]]:
    booking = await _load_booking(db, booking_id)
    authorize(identity, Action.VIEW_BOOKING, booking)
    poster = await db.get(Poster, booking.poster_id)
    return booking, poster


async def list_user_bookings(db: AsyncSession, user_id: int) -> list[tuple[TicketBooking, Optional[Poster]]]:
    result = await db.execute(
        select(TicketBooking, Poster)
        .outerjoin(Poster, TicketBooking.poster_id == Poster.id)
        .where(TicketBooking.user_id == user_id)
        .order_by(TicketBooking.created_at.desc(), TicketBooking.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_pending_bookings(
    db: AsyncSession, identity: Identity
) -> list[tuple[TicketBooking, Poster, User]]:
    """Pending bookings on the reviewer's own posters."""
    authorize(identity, Action.LIST_PENDING_BOOKINGS)
    result = await db.execute(
        select(TicketBooking, Poster, User)
        .join(Poster, TicketBooking.poster_id == Poster.id)
        .join(User, TicketBooking.user_id == User.id)
        .where(
            Poster.head_id == identity.user_id,
            TicketBooking.status == BookingStatus.PENDING.value,
        )
        .order_by(TicketBooking.created_at.asc(), TicketBooking.id.asc())
    )
    return [(row[0], row[1], row[2]) for row in result.all()]


async def user_calendar(db: AsyncSession, user_id: int) -> list[tuple[TicketBooking, Poster]]:
    result = await db.execute(
        select(TicketBooking, Poster)
        .join(Poster, TicketBooking.poster_id == Poster.id)
        .where(
            TicketBooking.user_id == user_id,
            TicketBooking.status == BookingStatus.APPROVED.value,
        )
        .order_by(Poster.event_date.asc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def held_seats(db: AsyncSession, poster_id: int) -> int:
    """Seats held by pending + approved bookings; equals seats - seats_left."""
    total = await db.scalar(
        select(func.coalesce(func.sum(TicketBooking.number_of_persons), 0)).where(
            TicketBooking.poster_id == poster_id,
            TicketBooking.status.in_(sorted(SEAT_HOLDING_STATUSES)),
        )
    )
    return int(total or 0)
