"""
Seat ledger: the posters.seats_left counter and its update discipline.

CONCURRENCY STRATEGY: Conditional Decrement
===========================================

Problem:
  Two requests book the last seats of a poster at the same time.
  Both read seats_left=2, both see room for 2, both write 0.
  Result: Oversell.

Solution:
  The capacity check and the decrement are one statement:

    UPDATE posters SET seats_left = seats_left - :n
    WHERE id = :poster_id AND seats_left >= :n

  The database evaluates the predicate against the row it is about to write,
  under its own row lock, so two concurrent reservations serialize on the row
  and the second one sees the first one's result. rowcount == 0 means either
  the poster is gone or the seats are. No read-then-write, no retry loop.

  release() is the mirror image, clamped so seats_left never exceeds seats.
  resize() moves seats and seats_left by the same delta, guarded so the new
  total never drops below what bookings already hold.

  The CHECK constraints on posters are the final safety net.

None of these functions commit: they run inside the caller's unit of work so
the ledger move and the booking row change land (or roll back) together.
reserve/release are not idempotent and must not be retried blindly.
"""

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.exceptions import InsufficientSeats, InvalidSeatCount, NotFound
from unihub.core.logging import get_logger
from unihub.core.metrics import record_ledger
from unihub.models.poster import Poster

logger = get_logger(__name__)


async def _seats_left(db: AsyncSession, poster_id: int) -> int | None:
    return await db.scalar(select(Poster.seats_left).where(Poster.id == poster_id))


async def reserve(db: AsyncSession, poster_id: int, count: int) -> int:
    """
    Atomically take `count` seats. Returns the new seats_left.
    Raises InsufficientSeats or NotFound; seats_left is unchanged on failure.
    """
    if count <= 0:
        raise InvalidSeatCount("Number of persons must be positive", requested=count)

    result = await db.execute(
        update(Poster)
        .where(Poster.id == poster_id, Poster.seats_left >= count)
        .values(seats_left=Poster.seats_left - count)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        available = await _seats_left(db, poster_id)
        if available is None:
            record_ledger("reserve", "not_found")
            raise NotFound("Poster", poster_id)
        record_ledger("reserve", "insufficient")
        logger.warning(
            "seat_reservation_rejected",
            poster_id=poster_id,
            requested=count,
            available=available,
        )
        raise InsufficientSeats(poster_id, requested=count, available=available)

    seats_left = await _seats_left(db, poster_id)
    record_ledger("reserve", "ok", count)
    logger.info("seats_reserved", poster_id=poster_id, count=count, seats_left=seats_left)
    return seats_left


async def release(db: AsyncSession, poster_id: int, count: int) -> int:
    """Give `count` seats back, never above the poster's total. Returns seats_left."""
    if count <= 0:
        raise InvalidSeatCount("Released seat count must be positive", requested=count)

    restored = Poster.seats_left + count
    result = await db.execute(
        update(Poster)
        .where(Poster.id == poster_id)
        .values(seats_left=case((restored > Poster.seats, Poster.seats), else_=restored))
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        record_ledger("release", "not_found")
        raise NotFound("Poster", poster_id)

    seats_left = await _seats_left(db, poster_id)
    record_ledger("release", "ok", count)
    logger.info("seats_released", poster_id=poster_id, count=count, seats_left=seats_left)
    return seats_left


async def resize(db: AsyncSession, poster_id: int, new_total: int) -> int:
    """
    Change a poster's total seats, shifting seats_left by the same delta.
    Refuses to shrink below the seats currently held by bookings.
    """
    if new_total <= 0:
        raise InvalidSeatCount("Seats must be positive", requested=new_total)

    result = await db.execute(
        update(Poster)
        .where(Poster.id == poster_id, Poster.seats - Poster.seats_left <= new_total)
        .values(
            seats_left=Poster.seats_left + (new_total - Poster.seats),
            seats=new_total,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        row = (
            await db.execute(select(Poster.seats, Poster.seats_left).where(Poster.id == poster_id))
        ).one_or_none()
        if row is None:
            record_ledger("resize", "not_found")
            raise NotFound("Poster", poster_id)
        reserved = row.seats - row.seats_left
        record_ledger("resize", "insufficient")
        raise InvalidSeatCount(
            f"Cannot reduce seats to {new_total}: {reserved} seats are already booked",
            poster_id=poster_id,
            requested=new_total,
            reserved=reserved,
        )

    seats_left = await _seats_left(db, poster_id)
    record_ledger("resize", "ok")
    logger.info("seats_resized", poster_id=poster_id, seats=new_total, seats_left=seats_left)
    return seats_left
