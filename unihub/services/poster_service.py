"""
Poster service: event listings that own a seat ledger.

seats/seats_left are never written directly here; creation initializes
seats_left = seats and any resize goes through seat_ledger.resize.
"""

from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.config import get_settings
from unihub.core.logging import get_logger
from unihub.core.exceptions import NotFound
from unihub.core.permissions import Action, authorize
from unihub.core.security import Identity
from unihub.models.booking import TicketBooking
from unihub.models.poster import Poster
from unihub.schemas.poster import PosterCreate, PosterUpdate
from unihub.services import seat_ledger
from unihub.services.blob_store import BlobStore, decode_upload
from unihub.services.club_service import get_event

logger = get_logger(__name__)
settings = get_settings()


async def get_poster(db: AsyncSession, poster_id: int, fresh: bool = False) -> Poster:
    """fresh=True bypasses the identity map (after ledger updates)."""
    poster = await db.get(Poster, poster_id, populate_existing=fresh)
    if poster is None:
        raise NotFound("Poster", poster_id)
    return poster


async def create_poster(
    db: AsyncSession,
    identity: Identity,
    data: PosterCreate,
    blob_store: BlobStore,
) -> Poster:
    event = await get_event(db, data.event_id)
    authorize(identity, Action.CREATE_POSTER, event)

    image_path: Optional[str] = None
    if data.image_base64:
        raw = decode_upload(data.image_base64, settings.MAX_UPLOAD_BYTES)
        image_path = await blob_store.store(raw, data.image_ext, prefix="poster")

    poster = Poster(
        event_id=event.id,
        club_id=event.club_id,
        head_id=identity.user_id,
        event_title=data.event_title,
        event_date=data.event_date,
        location=data.location,
        time=data.time,
        description=data.description,
        seats=data.seats,
        seats_left=data.seats,
        price=data.price,
        image=image_path,
    )
    db.add(poster)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        if image_path:
            await blob_store.delete(image_path)
        raise
    await db.refresh(poster)

    logger.info("poster_created", poster_id=poster.id, event_id=event.id, seats=poster.seats)
    return poster


async def list_posters(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    club_id: Optional[int] = None,
    head_id: Optional[int] = None,
) -> tuple[list[Poster], int]:
    query = select(Poster)
    if club_id is not None:
        query = query.where(Poster.club_id == club_id)
    if head_id is not None:
        query = query.where(Poster.head_id == head_id)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(Poster.event_date.asc(), Poster.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_poster(
    db: AsyncSession,
    identity: Identity,
    poster_id: int,
    data: PosterUpdate,
    blob_store: BlobStore,
) -> Poster:
    poster = await get_poster(db, poster_id)
    authorize(identity, Action.MANAGE_POSTER, poster)

    fields = data.model_dump(exclude_unset=True, exclude={"seats", "image_base64", "image_ext"})
    for name, value in fields.items():
        if value is not None:
            setattr(poster, name, value)

    old_image = poster.image
    new_image: Optional[str] = None
    if data.image_base64:
        raw = decode_upload(data.image_base64, settings.MAX_UPLOAD_BYTES)
        new_image = await blob_store.store(raw, data.image_ext, prefix="poster")
        poster.image = new_image

    try:
        await db.flush()
        if data.seats is not None and data.seats != poster.seats:
            await seat_ledger.resize(db, poster_id, data.seats)
        await db.commit()
    except Exception:
        await db.rollback()
        if new_image:
            await blob_store.delete(new_image)
        raise

    if new_image and old_image:
        await blob_store.delete(old_image)

    poster = await get_poster(db, poster_id, fresh=True)
    logger.info(
        "poster_updated",
        poster_id=poster_id,
        fields=sorted(fields),
        seats=poster.seats,
        seats_reserved=poster.seats_reserved,
    )
    return poster


async def delete_poster(
    db: AsyncSession,
    identity: Identity,
    poster_id: int,
    blob_store: BlobStore,
) -> None:
    """Removes the poster together with its bookings and their stored files."""
    poster = await get_poster(db, poster_id)
    authorize(identity, Action.MANAGE_POSTER, poster)

    proofs = (
        await db.execute(
            select(TicketBooking.payment_proof).where(
                TicketBooking.poster_id == poster_id,
                TicketBooking.payment_proof.is_not(None),
            )
        )
    ).scalars().all()
    image = poster.image

    try:
        removed = await db.execute(
            delete(TicketBooking)
            .where(TicketBooking.poster_id == poster_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(poster)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    for path in [*proofs, image]:
        if path:
            await blob_store.delete(path)

    logger.info("poster_deleted", poster_id=poster_id, bookings_removed=removed.rowcount)
