"""
Pydantic schemas for ticket bookings.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    poster_id: int
    number_of_persons: int = Field(..., gt=0, le=1000)
    payment_proof_base64: Optional[str] = None
    payment_proof_ext: str = Field("png", max_length=10)


class BookingResponse(BaseModel):
    id: int
    poster_id: int
    user_id: int
    number_of_persons: int
    payment_proof: Optional[str]
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PosterSummary(BaseModel):
    id: int
    event_title: str
    event_date: str
    location: str
    time: str
    price: int

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    poster: Optional[PosterSummary] = None


class BookerSummary(BaseModel):
    id: int
    name: str
    surname: str
    email: str

    model_config = {"from_attributes": True}


class PendingBookingResponse(BookingResponse):
    poster: PosterSummary
    user: BookerSummary


class BookingStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]


class BookingDeleteResponse(BaseModel):
    message: str
    booking_id: int
    seats_released: int


class CalendarEntry(BaseModel):
    id: int
    title: str
    date: str
    time: str
    location: str
    type: str = "ticket"
    persons: int
