"""
Pydantic schemas for clubs and their events.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClubCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    head_id: int
    goal: str = Field(..., min_length=1, max_length=1000)
    description: str = Field(..., min_length=1, max_length=2000)


class ClubUpdate(BaseModel):
    """Fields left out keep their current value."""

    goal: Optional[str] = Field(None, min_length=1, max_length=1000)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)


class ClubResponse(BaseModel):
    id: int
    name: str
    head_id: int
    goal: str
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    event_name: str = Field(..., min_length=1, max_length=255)
    event_date: str = Field(..., min_length=1, max_length=50)
    location: str = Field(..., min_length=1, max_length=255)
    short_description: str = Field(..., min_length=1, max_length=1000)


class EventResponse(BaseModel):
    id: int
    club_id: int
    head_id: int
    event_name: str
    event_date: str
    location: str
    short_description: str
    created_at: datetime

    model_config = {"from_attributes": True}
