"""
Authorization gate.

Every mutating operation names an Action and, where ownership matters, the
resource it acts on. Policies are composed from two capability checks:

    has_role(identity, roles)   - the caller's role is in the set
    is_owner(resource, user_id) - resource.owner_id matches the caller

A failed check raises Forbidden; nothing is ever silently skipped.
"""

import enum
from typing import Any, Callable, Iterable, Optional

from fastapi import Depends

from unihub.core.exceptions import Forbidden
from unihub.core.logging import get_logger
from unihub.core.security import Identity, get_current_identity
from unihub.models.user import Role

logger = get_logger(__name__)


class Action(str, enum.Enum):
    CREATE_CLUB = "create_club"
    VIEW_OWN_CLUB = "view_own_club"
    MANAGE_CLUB = "manage_club"
    CREATE_EVENT = "create_event"
    CREATE_POSTER = "create_poster"
    MANAGE_POSTER = "manage_poster"
    LIST_OWN_POSTERS = "list_own_posters"
    REVIEW_BOOKING = "review_booking"
    LIST_PENDING_BOOKINGS = "list_pending_bookings"
    VIEW_BOOKING = "view_booking"
    DELETE_BOOKING = "delete_booking"
    CHANGE_ROLE = "change_role"


def has_role(identity: Identity, roles: Iterable[Role]) -> bool:
    return identity.role in set(roles)


def is_owner(resource: Any, user_id: int) -> bool:
    return resource is not None and getattr(resource, "owner_id", None) == user_id


Policy = Callable[[Identity, Optional[Any]], bool]

HEAD = {Role.HEAD_ADMIN}
STAFF = {Role.HEAD_ADMIN, Role.SUPER_ADMIN}


def _head_owner(identity: Identity, resource: Any) -> bool:
    return has_role(identity, HEAD) and is_owner(resource, identity.user_id)


POLICIES: dict[Action, tuple[Policy, str]] = {
    Action.CREATE_CLUB: (
        lambda i, r: has_role(i, {Role.SUPER_ADMIN}),
        "Only super admins can create clubs",
    ),
    Action.VIEW_OWN_CLUB: (
        lambda i, r: has_role(i, HEAD),
        "Only head admins can access their club",
    ),
    Action.MANAGE_CLUB: (_head_owner, "Unauthorized access"),
    Action.CREATE_EVENT: (_head_owner, "You can only create events for your own club"),
    Action.CREATE_POSTER: (_head_owner, "You can only create posters for your own events"),
    Action.MANAGE_POSTER: (_head_owner, "Unauthorized access"),
    Action.LIST_OWN_POSTERS: (
        lambda i, r: has_role(i, HEAD),
        "Only head admins can view their posters",
    ),
    Action.REVIEW_BOOKING: (_head_owner, "You can only review tickets for your own events"),
    Action.LIST_PENDING_BOOKINGS: (lambda i, r: has_role(i, HEAD), "Unauthorized access"),
    Action.VIEW_BOOKING: (
        lambda i, r: is_owner(r, i.user_id) or has_role(i, STAFF),
        "Unauthorized access",
    ),
    Action.DELETE_BOOKING: (
        lambda i, r: is_owner(r, i.user_id) or has_role(i, HEAD),
        "Unauthorized access",
    ),
    Action.CHANGE_ROLE: (lambda i, r: has_role(i, {Role.SUPER_ADMIN}), "Unauthorized access"),
}


def can(identity: Identity, action: Action, resource: Any = None) -> bool:
    policy, _ = POLICIES[action]
    return policy(identity, resource)


def authorize(identity: Identity, action: Action, resource: Any = None) -> None:
    if can(identity, action, resource):
        return
    _, message = POLICIES[action]
    logger.warning(
        "authorization_denied",
        action=action.value,
        user_id=identity.user_id,
        role=identity.role.value,
        resource=type(resource).__name__ if resource is not None else None,
        resource_id=getattr(resource, "id", None),
    )
    raise Forbidden(message, action=action.value)


def require_action(action: Action):
    """Route dependency for checks that do not depend on a loaded resource."""

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        authorize(identity, action)
        return identity

    return dependency
