from unihub.models.user import User, Role
from unihub.models.club import Club, Event
from unihub.models.poster import Poster
from unihub.models.booking import TicketBooking, BookingStatus, SEAT_HOLDING_STATUSES

__all__ = [
    "User", "Role",
    "Club", "Event",
    "Poster",
    "TicketBooking", "BookingStatus", "SEAT_HOLDING_STATUSES",
]
