"""
Ticket booking: a user's reservation against a poster's seats.

Key design decisions:
- Status is pending -> approved | rejected, each decided exactly once
- No unique (user, poster) constraint: duplicate bookings are allowed
- pending and approved bookings hold seats; rejected ones do not
"""

import enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from unihub.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


SEAT_HOLDING_STATUSES = frozenset({BookingStatus.PENDING.value, BookingStatus.APPROVED.value})


class TicketBooking(Base, TimestampMixin):
    __tablename__ = "ticket_bookings"

    id = Column(Integer, primary_key=True, index=True)
    poster_id = Column(Integer, ForeignKey("posters.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    number_of_persons = Column(Integer, nullable=False)
    payment_proof = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    __table_args__ = (
        CheckConstraint("number_of_persons > 0", name="check_booking_persons_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="check_booking_status"
        ),
        Index("ix_ticket_bookings_poster_status", "poster_id", "status"),
    )

    @property
    def owner_id(self) -> int:
        return self.user_id

    @property
    def holds_seats(self) -> bool:
        return self.status in SEAT_HOLDING_STATUSES

    def __repr__(self) -> str:
        return f"<TicketBooking(id={self.id}, user={self.user_id}, poster={self.poster_id}, status={self.status})>"
