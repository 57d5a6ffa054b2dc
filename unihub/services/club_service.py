"""
Clubs and events: just enough to anchor poster ownership.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.exceptions import BadRequest, Conflict, NotFound
from unihub.core.logging import get_logger
from unihub.core.permissions import Action, authorize
from unihub.core.security import Identity
from unihub.models.club import Club, Event
from unihub.models.user import Role, User
from unihub.schemas.club import ClubCreate, ClubUpdate, EventCreate

logger = get_logger(__name__)


async def create_club(db: AsyncSession, identity: Identity, data: ClubCreate) -> Club:
    authorize(identity, Action.CREATE_CLUB)

    head = await db.get(User, data.head_id)
    if head is None:
        raise NotFound("User", data.head_id)
    if head.role != Role.HEAD_ADMIN.value:
        raise BadRequest("Club head must be a head admin", head_id=data.head_id, role=head.role)

    existing = await db.execute(select(Club.id).where(Club.name == data.name))
    if existing.scalar_one_or_none() is not None:
        raise Conflict("Club name already taken", name=data.name)

    club = Club(name=data.name, head_id=data.head_id, goal=data.goal, description=data.description)
    db.add(club)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Club name already taken", name=data.name) from e
    await db.refresh(club)

    logger.info("club_created", club_id=club.id, head_id=club.head_id)
    return club


async def get_club(db: AsyncSession, club_id: int) -> Club:
    club = await db.get(Club, club_id)
    if club is None:
        raise NotFound("Club", club_id)
    return club


async def get_head_club(db: AsyncSession, identity: Identity) -> Club:
    result = await db.execute(
        select(Club).where(Club.head_id == identity.user_id).order_by(Club.id.asc())
    )
    club = result.scalars().first()
    if club is None:
        raise NotFound("Club", message="Club not found")
    return club


async def update_club(db: AsyncSession, identity: Identity, club_id: int, data: ClubUpdate) -> Club:
    club = await get_club(db, club_id)
    authorize(identity, Action.MANAGE_CLUB, club)

    changes = data.model_dump(exclude_none=True)
    for field, value in changes.items():
        setattr(club, field, value)
    await db.commit()
    await db.refresh(club)

    logger.info("club_updated", club_id=club.id, fields=sorted(changes))
    return club


async def list_clubs(db: AsyncSession) -> list[Club]:
    result = await db.execute(select(Club).order_by(Club.name.asc()))
    return list(result.scalars().all())


async def create_event(db: AsyncSession, identity: Identity, club_id: int, data: EventCreate) -> Event:
    club = await get_club(db, club_id)
    authorize(identity, Action.CREATE_EVENT, club)

    event = Event(
        club_id=club.id,
        head_id=club.head_id,
        event_name=data.event_name,
        event_date=data.event_date,
        location=data.location,
        short_description=data.short_description,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, club_id=club.id)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound("Event", event_id)
    return event


async def list_club_events(db: AsyncSession, club_id: int) -> list[Event]:
    await get_club(db, club_id)
    result = await db.execute(
        select(Event).where(Event.club_id == club_id).order_by(Event.event_date.asc())
    )
    return list(result.scalars().all())
