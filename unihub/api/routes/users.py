"""
User profile and role management endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.security import Identity, get_current_identity, get_current_user_id
from unihub.db.session import get_db
from unihub.schemas.user import RoleUpdate, UserResponse
from unihub.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user_id: int = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: int,
    payload: RoleUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Super admin only."""
    return await user_service.update_user_role(db, identity, user_id, payload.role)
