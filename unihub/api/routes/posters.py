"""
Poster endpoints with Redis caching on list operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.logging import get_logger
from unihub.core.permissions import Action, require_action
from unihub.core.security import Identity, get_current_identity
from unihub.db.session import get_db
from unihub.schemas.poster import PosterCreate, PosterListResponse, PosterResponse, PosterUpdate
from unihub.schemas.user import MessageResponse
from unihub.services import poster_service
from unihub.services.blob_store import BlobStore, get_blob_store
from unihub.services.cache_service import get_cached_posters, invalidate_poster_cache, set_cached_posters

logger = get_logger(__name__)
router = APIRouter(prefix="/posters", tags=["Posters"])


@router.post("/", response_model=PosterResponse, status_code=status.HTTP_201_CREATED)
async def create_poster(
    payload: PosterCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Head admin publishes a poster for one of their events. seats_left starts at seats."""
    poster = await poster_service.create_poster(db, identity, payload, blob_store)
    await invalidate_poster_cache()
    return poster


@router.get("/", response_model=PosterListResponse)
async def list_posters(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    club_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    List posters with pagination.
    Results are cached in Redis; any seat movement or poster change drops the cache.
    """
    cached = await get_cached_posters(page, page_size, club_id)
    if cached:
        logger.info("posters_list_cache_hit", page=page)
        cached["cached"] = True
        return PosterListResponse(**cached)

    posters, total = await poster_service.list_posters(db, page, page_size, club_id=club_id)

    response_data = {
        "posters": [PosterResponse.model_validate(p).model_dump(mode="json") for p in posters],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_posters(page, page_size, club_id, response_data)
    return PosterListResponse(**response_data)


@router.get("/my-posters", response_model=list[PosterResponse])
async def list_my_posters(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(require_action(Action.LIST_OWN_POSTERS)),
    db: AsyncSession = Depends(get_db),
):
    posters, _ = await poster_service.list_posters(db, page, page_size, head_id=identity.user_id)
    return posters


@router.get("/club/{club_id}", response_model=list[PosterResponse])
async def list_club_posters(
    club_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    posters, _ = await poster_service.list_posters(db, page, page_size, club_id=club_id)
    return posters


@router.get("/{poster_id}", response_model=PosterResponse)
async def get_poster(poster_id: int, db: AsyncSession = Depends(get_db)):
    """Single poster read straight from the database, never cached."""
    return await poster_service.get_poster(db, poster_id)


@router.put("/{poster_id}", response_model=PosterResponse)
async def update_poster(
    poster_id: int,
    payload: PosterUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Changing seats resizes the ledger; shrinking below the seats already held is refused."""
    poster = await poster_service.update_poster(db, identity, poster_id, payload, blob_store)
    await invalidate_poster_cache()
    return poster


@router.delete("/{poster_id}", response_model=MessageResponse)
async def delete_poster(
    poster_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    await poster_service.delete_poster(db, identity, poster_id, blob_store)
    await invalidate_poster_cache()
    return MessageResponse(message="Poster deleted successfully")
