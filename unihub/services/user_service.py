"""
User profile reads and role management.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from unihub.core.exceptions import NotFound
from unihub.core.logging import get_logger
from unihub.core.permissions import Action, authorize
from unihub.core.security import Identity
from unihub.models.user import Role, User

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user


async def update_user_role(db: AsyncSession, identity: Identity, user_id: int, role: Role) -> User:
    """Super admins promote/demote users. Takes effect on the user's next login."""
    authorize(identity, Action.CHANGE_ROLE)
    user = await get_user(db, user_id)

    previous = user.role
    user.role = role.value
    await db.commit()
    await db.refresh(user)

    logger.info("user_role_changed", user_id=user_id, previous=previous, role=role.value, by=identity.user_id)
    return user
