"""
Pydantic schemas for posters. Images travel as base64 in the JSON body.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PosterCreate(BaseModel):
    event_id: int
    event_title: str = Field(..., min_length=1, max_length=255)
    event_date: str = Field(..., min_length=1, max_length=50)
    location: str = Field(..., min_length=1, max_length=255)
    time: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=2000)
    seats: int = Field(..., gt=0, le=100000)
    price: int = Field(0, ge=0)
    image_base64: Optional[str] = None
    image_ext: str = Field("png", max_length=10)


class PosterUpdate(BaseModel):
    event_title: Optional[str] = Field(None, min_length=1, max_length=255)
    event_date: Optional[str] = Field(None, min_length=1, max_length=50)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    time: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    seats: Optional[int] = Field(None, gt=0, le=100000)
    price: Optional[int] = Field(None, ge=0)
    image_base64: Optional[str] = None
    image_ext: str = Field("png", max_length=10)


class PosterResponse(BaseModel):
    id: int
    event_id: int
    club_id: int
    head_id: int
    event_title: str
    event_date: str
    location: str
    time: str
    description: str
    seats: int
    seats_left: int
    price: int
    image: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class PosterListResponse(BaseModel):
    posters: list[PosterResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
