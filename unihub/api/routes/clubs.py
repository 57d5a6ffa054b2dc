"""
Club and event endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.permissions import Action, require_action
from unihub.core.security import Identity, get_current_identity
from unihub.db.session import get_db
from unihub.schemas.club import ClubCreate, ClubResponse, ClubUpdate, EventCreate, EventResponse
from unihub.services import club_service

router = APIRouter(prefix="/clubs", tags=["Clubs"])


@router.post("/", response_model=ClubResponse, status_code=status.HTTP_201_CREATED)
async def create_club(
    payload: ClubCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Super admin creates a club headed by an existing head admin."""
    return await club_service.create_club(db, identity, payload)


@router.get("/", response_model=list[ClubResponse])
async def list_clubs(db: AsyncSession = Depends(get_db)):
    return await club_service.list_clubs(db)


@router.get("/my-club", response_model=ClubResponse)
async def get_my_club(
    identity: Identity = Depends(require_action(Action.VIEW_OWN_CLUB)),
    db: AsyncSession = Depends(get_db),
):
    """The club headed by the calling head admin."""
    return await club_service.get_head_club(db, identity)


@router.get("/{club_id}", response_model=ClubResponse)
async def get_club(club_id: int, db: AsyncSession = Depends(get_db)):
    return await club_service.get_club(db, club_id)


@router.put("/{club_id}", response_model=ClubResponse)
async def update_club(
    club_id: int,
    payload: ClubUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await club_service.update_club(db, identity, club_id, payload)


@router.post("/{club_id}/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    club_id: int,
    payload: EventCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await club_service.create_event(db, identity, club_id, payload)


@router.get("/{club_id}/events", response_model=list[EventResponse])
async def list_events(club_id: int, db: AsyncSession = Depends(get_db)):
    return await club_service.list_club_events(db, club_id)
