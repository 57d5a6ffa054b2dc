"""
Poster model: a bookable event listing carrying the seat ledger.

Key design decisions:
- seats_left is the ledger counter; it only moves through seat_ledger
- CHECK constraints keep 0 <= seats_left <= seats even if a caller misbehaves
- head_id is denormalized from the event so ownership checks need one row
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from unihub.db.base import Base, TimestampMixin


class Poster(Base, TimestampMixin):
    __tablename__ = "posters"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    club_id = Column(Integer, ForeignKey("clubs.id"), nullable=False, index=True)
    head_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_title = Column(String(255), nullable=False)
    event_date = Column(String(50), nullable=False)
    location = Column(String(255), nullable=False)
    time = Column(String(50), nullable=False)
    description = Column(String(2000), nullable=False)
    seats = Column(Integer, nullable=False)
    seats_left = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    image = Column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("seats > 0", name="check_poster_seats_positive"),
        CheckConstraint("seats_left >= 0", name="check_poster_seats_left_non_negative"),
        CheckConstraint("seats_left <= seats", name="check_poster_seats_left_lte_seats"),
        CheckConstraint("price >= 0", name="check_poster_price_non_negative"),
        Index("ix_posters_event_date", "event_date"),
    )

    @property
    def owner_id(self) -> int:
        return self.head_id

    @property
    def seats_reserved(self) -> int:
        return self.seats - self.seats_left

    def __repr__(self) -> str:
        return f"<Poster(id={self.id}, title={self.event_title}, left={self.seats_left}/{self.seats})>"
